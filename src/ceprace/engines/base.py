import aiohttp
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Protocol

from .. import config
from ..errors import InvalidInputError, SourceError
from ..models import Address, normalize_cep
from ..scope import CancellationScope

logger = logging.getLogger(__name__)


class AddressSource(Protocol):
    """Anything the coordinator can race: a name plus a cancellable fetch."""

    name: str

    async def fetch(self, query: str, scope: CancellationScope) -> Address:
        ...


class HttpAddressEngine:
    """
    Shared HTTP layer for JSON address providers.

    Subclasses set `name`, build the provider URL and map the provider payload
    onto the common Address record. Every failure surfaces as SourceError;
    cancellation of the scope aborts the in-flight request.
    """

    name = "HTTP"

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        request_timeout: Optional[float] = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self.request_timeout = request_timeout if request_timeout is not None else config.REQUEST_TIMEOUT

    def build_url(self, cep: str) -> str:
        raise NotImplementedError

    def parse(self, data: Dict[str, Any]) -> Address:
        raise NotImplementedError

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[aiohttp.ClientSession]:
        # Reuse the injected session; otherwise own a private one for this call.
        if self._session is not None:
            yield self._session
        else:
            async with aiohttp.ClientSession() as session:
                yield session

    def _timeout_for(self, scope: CancellationScope) -> aiohttp.ClientTimeout:
        remaining = scope.remaining()
        total = self.request_timeout if remaining is None else min(remaining, self.request_timeout)
        # aiohttp treats a zero total as "no timeout"
        return aiohttp.ClientTimeout(total=max(total, 0.001))

    async def fetch(self, query: str, scope: CancellationScope) -> Address:
        """
        Fetches one CEP from the provider.

        Args:
            query: Normalized 8-digit CEP
            scope: Race scope; its deadline bounds the request

        Returns:
            Address with source_name set to this engine's name

        Raises:
            SourceError: On network failure, non-200 status or malformed payload
            ScopeCancelledError: If the scope is already cancelled
        """
        scope.raise_if_cancelled()
        url = self.build_url(query)
        logger.debug(f"{self.name}: GET {url}")

        try:
            async with self._client() as session:
                async with session.get(url, timeout=self._timeout_for(scope)) as response:
                    if response.status != 200:
                        raise SourceError(self.name, f"{self.name} returned status {response.status}")
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise SourceError(self.name, f"invalid JSON payload: {e}") from e
        except asyncio.TimeoutError as e:
            raise SourceError(self.name, "request timed out") from e
        except aiohttp.ClientError as e:
            raise SourceError(self.name, f"request failed: {e}") from e

        if not isinstance(data, dict):
            raise SourceError(self.name, f"unexpected payload type {type(data).__name__}")

        address = self.parse(data)
        logger.debug(f"{self.name}: resolved {address.identifier}")
        return address

    def _require(self, data: Dict[str, Any], key: str) -> str:
        """Reads a mandatory string field, rejecting absent or empty values."""
        value = data.get(key)
        if value is None or not str(value).strip():
            raise SourceError(self.name, f"malformed payload: missing '{key}'")
        return str(value)

    def _identifier(self, data: Dict[str, Any], key: str) -> str:
        """Reads the CEP field in the bare 8-digit form every provider shares."""
        try:
            return normalize_cep(self._require(data, key))
        except InvalidInputError as e:
            raise SourceError(self.name, f"malformed payload: {e}") from e

    @staticmethod
    def _optional(data: Dict[str, Any], key: str) -> str:
        value = data.get(key)
        return "" if value is None else str(value)
