"""Unit tests for operator confirmation."""

import unittest
from unittest.mock import Mock

from bcmguard.system import ConsoleConfirmation


def tty(is_tty=True):
    stream = Mock()
    stream.isatty.return_value = is_tty
    return stream


class TestConsoleConfirmation(unittest.TestCase):

    def test_yes(self):
        for answer in ("y", "Y", " y\n"):
            confirm = ConsoleConfirmation(stdin=tty(), input_func=lambda prompt: answer)
            self.assertTrue(confirm.confirm("Continue?"))

    def test_anything_else_is_no(self):
        for answer in ("n", "", "yes", "N"):
            confirm = ConsoleConfirmation(stdin=tty(), input_func=lambda prompt: answer)
            self.assertFalse(confirm.confirm("Continue?", default=True))

    def test_prompt_suffix(self):
        input_func = Mock(return_value="n")

        ConsoleConfirmation(stdin=tty(), input_func=input_func).confirm("Continue anyway?")

        input_func.assert_called_once_with("Continue anyway? (y/n): ")

    def test_non_interactive_uses_default(self):
        input_func = Mock()
        confirm = ConsoleConfirmation(stdin=tty(False), input_func=input_func)

        self.assertFalse(confirm.confirm("Continue?"))
        self.assertTrue(confirm.confirm("Continue?", default=True))
        input_func.assert_not_called()

    def test_eof_uses_default(self):
        confirm = ConsoleConfirmation(stdin=tty(), input_func=Mock(side_effect=EOFError))

        self.assertFalse(confirm.confirm("Continue?"))


if __name__ == '__main__':
    unittest.main()
