import aiohttp
import asyncio
import logging
from typing import Any, Dict, Optional

from .. import config
from ..models import Address
from ..scope import CancellationScope
from .base import HttpAddressEngine

logger = logging.getLogger(__name__)


class BrasilApiEngine(HttpAddressEngine):
    """
    BrasilAPI CEP v1 adapter.
    Example payload: https://brasilapi.com.br/api/cep/v1/01153000
    """

    name = "BrasilAPI"

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: Optional[str] = None,
        request_timeout: Optional[float] = None
    ) -> None:
        super().__init__(base_url or config.BRASILAPI_URL, session, request_timeout)

    def build_url(self, cep: str) -> str:
        return f"{self.base_url}/{cep}"

    def parse(self, data: Dict[str, Any]) -> Address:
        return Address(
            identifier=self._identifier(data, "cep"),
            address_line=self._optional(data, "street"),
            district=self._optional(data, "neighborhood"),
            city=self._require(data, "city"),
            region=self._require(data, "state"),
            source_name=self.name,
        )


# --- MANUAL CHECK BLOCK ---
if __name__ == "__main__":
    async def test_run():
        logging.basicConfig(level=logging.DEBUG)
        async with aiohttp.ClientSession() as session:
            engine = BrasilApiEngine(session)
            with CancellationScope(timeout=config.RACE_TIMEOUT) as scope:
                address = await engine.fetch(config.CEP_QUERY, scope)
        logger.info(f"BrasilAPI resolved {address}")

    asyncio.run(test_run())
