import asyncio
import random
from typing import Dict, Optional, Tuple

from .errors import SourceError
from .models import Address
from .scope import CancellationScope

# Sample street data keyed by CEP, shaped like the providers' answers.
_SAMPLE_ADDRESSES: Dict[str, Tuple[str, str, str, str]] = {
    "06341650": ("Rua Niterói", "Parque Santa Teresa", "Carapicuíba", "SP"),
    "01153000": ("Rua Vitorino Carmilo", "Barra Funda", "São Paulo", "SP"),
}


def get_mock_address(cep: str, source_name: str) -> Address:
    """
    Generates a synthetic address for offline runs.
    Unknown CEPs get a generic city-wide record (empty street and district).
    """
    street, district, city, region = _SAMPLE_ADDRESSES.get(cep, ("", "", "São Paulo", "SP"))
    return Address(
        identifier=cep,
        address_line=street,
        district=district,
        city=city,
        region=region,
        source_name=source_name,
    )


class MockAddressEngine:
    """
    Offline provider stand-in used when USE_MOCK_DATA is enabled.

    Sleeps for `latency` seconds (or a random value in `latency_range`) and then
    answers with a synthetic address, or raises SourceError when `error` is set.
    Sleeping is the suspension point, so scope cancellation aborts it like real I/O.
    """

    def __init__(
        self,
        name: str,
        latency: Optional[float] = None,
        latency_range: Tuple[float, float] = (0.05, 0.4),
        error: Optional[str] = None
    ) -> None:
        self.name = name
        self.latency = latency
        self.latency_range = latency_range
        self.error = error

    def _next_latency(self) -> float:
        if self.latency is not None:
            return self.latency
        return random.uniform(*self.latency_range)

    async def fetch(self, query: str, scope: CancellationScope) -> Address:
        scope.raise_if_cancelled()
        await asyncio.sleep(self._next_latency())
        if self.error is not None:
            raise SourceError(self.name, self.error)
        return get_mock_address(query, self.name)
