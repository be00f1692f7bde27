"""
Operator confirmation providers.

Recovery has three decision points that need an explicit yes/no from the
operator. When nobody is attending the terminal the provider answers with the
caller's default, which is always the safe choice (decline).
"""

import sys
from abc import ABC, abstractmethod
from typing import Callable, Optional, TextIO

import structlog

logger = structlog.get_logger(__name__)


class ConfirmationProvider(ABC):
    """Answers a yes/no question."""

    @abstractmethod
    def confirm(self, prompt: str, default: bool = False) -> bool:
        """
        Ask the operator a yes/no question.

        Args:
            prompt: Question shown to the operator
            default: Answer used when no interactive answer is possible

        Returns:
            True for yes, False for no
        """
        pass


class ConsoleConfirmation(ConfirmationProvider):
    """Prompts on the controlling terminal; only 'y' or 'Y' counts as yes."""

    def __init__(self, stdin: Optional[TextIO] = None, input_func: Callable[[str], str] = input):
        self.stdin = stdin or sys.stdin
        self.input_func = input_func

    def confirm(self, prompt: str, default: bool = False) -> bool:
        if not self.stdin.isatty():
            logger.warning("Non-interactive input, using default answer", prompt=prompt, default=default)
            return default
        try:
            answer = self.input_func(f"{prompt} (y/n): ")
        except EOFError:
            logger.warning("No answer received, using default answer", prompt=prompt, default=default)
            return default
        return answer.strip() in ("y", "Y")
