import re
from dataclasses import dataclass
from typing import Union

from .errors import InvalidInputError, SourceError

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_TIMEOUT = 124

_NON_DIGITS = re.compile(r"[\s.\-]")


def normalize_cep(raw: str) -> str:
    """
    Strips common CEP punctuation and checks the 8-digit shape.
    Examples: "06341-650" -> "06341650", "01.153-000" -> "01153000"
    """
    cep = _NON_DIGITS.sub("", raw or "")
    if len(cep) != 8 or not cep.isdigit():
        raise InvalidInputError(f"Invalid CEP {raw!r}: expected 8 digits")
    return cep


@dataclass(frozen=True)
class Address:
    """Normalized address record, identical in shape for every provider."""
    identifier: str
    address_line: str
    district: str
    city: str
    region: str
    source_name: str


@dataclass(frozen=True)
class Success:
    result: Address

    @property
    def source_name(self) -> str:
        return self.result.source_name

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS


@dataclass(frozen=True)
class Failure:
    error: SourceError

    @property
    def source_name(self) -> str:
        return self.error.source_name

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURE


@dataclass(frozen=True)
class TimedOut:
    timeout: float

    @property
    def exit_code(self) -> int:
        return EXIT_TIMEOUT


Outcome = Union[Success, Failure, TimedOut]
