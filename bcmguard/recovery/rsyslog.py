"""
Rate-limiting directives for the system logger configuration.

The block is only ever added once: if a socket-input rate-limit interval
directive is already present the configuration is left alone. Rate limits on
other inputs (imjournal ``ratelimit.interval``) do not count.
"""

import re
from datetime import datetime
from typing import Optional

RATE_LIMIT_DIRECTIVE = "SystemLogRateLimitInterval"

_DIRECTIVE_RE = re.compile(r"^\s*\$?" + RATE_LIMIT_DIRECTIVE + r"\b", re.MULTILINE)
# RainerScript form, e.g. module(load="imuxsock" SysSock.RateLimit.Interval="5")
_RAINERSCRIPT_RE = re.compile(r"^[^#\n]*\bSysSock\.RateLimit\.Interval\s*=", re.MULTILINE | re.IGNORECASE)


def has_rate_limit_directive(config_text: str) -> bool:
    """True if a non-commented socket rate-limit interval directive is present."""
    return bool(_DIRECTIVE_RE.search(config_text) or _RAINERSCRIPT_RE.search(config_text))


def render_rate_limit_block(interval: int, burst: int, tool: str,
                            now: Optional[datetime] = None) -> str:
    """Directive block appended to the logger configuration."""
    now = now or datetime.now()
    return (
        "\n"
        "# BCM Recovery: Rate limiting to prevent rsyslog error loops\n"
        f"# Added by {tool} on {now.strftime('%a %b %d %H:%M:%S %Y')}\n"
        f"${RATE_LIMIT_DIRECTIVE} {interval}\n"
        f"$SystemLogRateLimitBurst {burst}\n"
    )


def rate_limit_addition(config_text: str, interval: int, burst: int, tool: str,
                        now: Optional[datetime] = None) -> Optional[str]:
    """
    Block to append to the configuration, if any.

    Returns:
        The rate-limit block, or None when a directive already exists
    """
    if has_rate_limit_directive(config_text):
        return None
    return render_rate_limit_block(interval, burst, tool, now)
