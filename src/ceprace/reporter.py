import sys
from typing import Optional, TextIO

from .models import Failure, Outcome, Success, TimedOut

# ANSI Color Codes
RESET = "\033[0m"
BOLD = "\033[1m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"


class ConsoleReporter:
    """
    Presentation Layer for race outcomes.
    Renders exactly one line per outcome; holds no race logic.
    """

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.color = color

    def _paint(self, text: str, *codes: str) -> str:
        if not self.color:
            return text
        return f"{''.join(codes)}{text}{RESET}"

    def render(self, outcome: Outcome) -> str:
        if isinstance(outcome, Success):
            r = outcome.result
            head = self._paint(f"Result from {r.source_name}:", BOLD, GREEN)
            return (f"{head} CEP {r.identifier} | {r.address_line or '-'} | "
                    f"{r.district or '-'} | {r.city}/{r.region}")
        if isinstance(outcome, Failure):
            head = self._paint(f"Error from {outcome.source_name}:", BOLD, RED)
            return f"{head} {outcome.message}"
        if isinstance(outcome, TimedOut):
            head = self._paint("Timeout:", BOLD, YELLOW)
            return f"{head} no response received within {outcome.timeout:g}s"
        raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")

    def report(self, outcome: Outcome) -> None:
        self.stream.write(self.render(outcome) + "\n")
        self.stream.flush()
