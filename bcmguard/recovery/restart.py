"""
Bounded service restart.

A service that hangs on restart must not hold the whole recovery hostage, and
a service that never comes up must not be restarted forever. Each attempt is
bounded by a timeout and the number of attempts is fixed.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from bcmguard.reporting import ReportSink
from bcmguard.system import SystemControl, SystemFacts


@dataclass(frozen=True)
class RestartReport:
    """Result of a bounded restart."""
    service: str
    active: bool
    attempts: int
    last_detail: Optional[str] = None


class BoundedRestart:
    """
    Restart a service until it reports active, at most max_attempts times.

    Args:
        facts: Used to check the service state after each restart
        control: Used to issue the restart
        sink: Run log
        max_attempts: Upper bound on restart attempts
        timeout: Per-attempt bound on the restart command, in seconds
        delay: Wait after a restart before checking state, and between attempts
        sleep: Sleep function (injected by tests)
    """

    def __init__(self, facts: SystemFacts, control: SystemControl, sink: ReportSink,
                 max_attempts: int, timeout: float, delay: float,
                 sleep: Callable[[float], None] = time.sleep):
        self.facts = facts
        self.control = control
        self.sink = sink
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.delay = delay
        self.sleep = sleep

    def run(self, service: str) -> RestartReport:
        state = {"attempt": 0, "detail": None}

        def attempt() -> bool:
            state["attempt"] += 1
            self.sink.info(f"Attempt {state['attempt']}/{self.max_attempts}...")
            result = self.control.restart_service(service, timeout=self.timeout)
            if result.output:
                self.sink.log_block(result.output)
            if not result.ok:
                state["detail"] = result.detail
                return False
            self.sleep(self.delay)
            return self.facts.is_service_active(service)

        def before_sleep(retry_state: RetryCallState) -> None:
            self.sink.warn(f"{service} not active yet, waiting {self.delay:g}s before retry...")

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_result(lambda active: not active),
            retry_error_callback=lambda retry_state: False,
            before_sleep=before_sleep,
            sleep=self.sleep,
        )
        active = retrying(attempt)
        return RestartReport(
            service=service,
            active=active,
            attempts=state["attempt"],
            last_detail=state["detail"],
        )
