import asyncio
from typing import Optional

from ceprace.errors import SourceError
from ceprace.models import Address
from ceprace.scope import CancellationScope


def make_address(source_name: str, identifier: str = "06341655") -> Address:
    return Address(
        identifier=identifier,
        address_line="Rua Niterói",
        district="Parque Santa Teresa",
        city="Carapicuíba",
        region="SP",
        source_name=source_name,
    )


class DelayedSource:
    """
    Instrumented test double: answers after `delay` seconds.

    Records whether the fetch was started, finished, or observed cancellation,
    and the scope it was handed.
    """

    def __init__(self, name: str, delay: float, result: Optional[Address] = None,
                 error: Optional[str] = None, stubborn: bool = False):
        self.name = name
        self.delay = delay
        self.result = result if result is not None else make_address(name)
        self.error = error
        # A stubborn source keeps running after cancellation.
        self.stubborn = stubborn
        self.calls = 0
        self.started = False
        self.finished = False
        self.cancelled = False
        self.scope: Optional[CancellationScope] = None

    async def fetch(self, query: str, scope: CancellationScope) -> Address:
        self.calls += 1
        self.started = True
        self.scope = scope
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            if not self.stubborn:
                raise
            await asyncio.sleep(self.delay)
        self.finished = True
        if self.error is not None:
            raise SourceError(self.name, self.error)
        return self.result

