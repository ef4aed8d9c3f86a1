import aiohttp
import asyncio
import logging
from typing import Any, Dict, Optional

from .. import config
from ..errors import SourceError
from ..models import Address
from ..scope import CancellationScope
from .base import HttpAddressEngine

logger = logging.getLogger(__name__)


class ViaCepEngine(HttpAddressEngine):
    """
    ViaCEP adapter.
    Example payload: http://viacep.com.br/ws/01153000/json/

    ViaCEP answers unknown CEPs with HTTP 200 and {"erro": true}, so the body
    is checked before mapping.
    """

    name = "ViaCEP"

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: Optional[str] = None,
        request_timeout: Optional[float] = None
    ) -> None:
        super().__init__(base_url or config.VIACEP_URL, session, request_timeout)

    def build_url(self, cep: str) -> str:
        return f"{self.base_url}/{cep}/json/"

    def parse(self, data: Dict[str, Any]) -> Address:
        # "erro" arrives as true or "true" depending on the API version
        if str(data.get("erro", "")).lower() == "true":
            raise SourceError(self.name, "CEP not found")

        return Address(
            identifier=self._identifier(data, "cep"),
            address_line=self._optional(data, "logradouro"),
            district=self._optional(data, "bairro"),
            city=self._require(data, "localidade"),
            region=self._require(data, "uf"),
            source_name=self.name,
        )


# --- MANUAL CHECK BLOCK ---
if __name__ == "__main__":
    async def test_run():
        logging.basicConfig(level=logging.DEBUG)
        async with aiohttp.ClientSession() as session:
            engine = ViaCepEngine(session)
            with CancellationScope(timeout=config.RACE_TIMEOUT) as scope:
                address = await engine.fetch(config.CEP_QUERY, scope)
        logger.info(f"ViaCEP resolved {address}")

    asyncio.run(test_run())
