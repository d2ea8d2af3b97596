"""Blocking yes/no decision from the operator."""

from typing import Callable


class ConfirmationGate:
    """Asks the operator a yes/no question over an injected line-based channel."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print
    ):
        """
        Args:
            input_func: Reads one line of operator input given a prompt
            output_func: Writes a line of guidance to the operator
        """
        self.input_func = input_func
        self.output_func = output_func

    def confirm(self, prompt_context: str) -> bool:
        """
        Ask until the operator answers Y or N (case-insensitive).

        Any other answer re-prompts; there is no retry limit.

        Returns:
            True for Y, False for N
        """
        prompt = f"{prompt_context} (Y/N): "
        while True:
            answer = self.input_func(prompt).strip().upper()
            if answer == 'Y':
                return True
            if answer == 'N':
                return False
            self.output_func("Please answer Y or N.")


__all__ = ['ConfirmationGate']
