"""Concurrent, individually fault-tolerant token metadata reads."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from pumpwatch.core.models import UNSET, TokenMetadata
from pumpwatch.core.utils import short_addr

logger = logging.getLogger(__name__)

# TokenMetadata field -> on-chain getter
_FIELDS: dict[str, str] = {
    "symbol": "symbol",
    "decimals": "decimals",
    "description": "description",
    "website": "website",
    "telegram": "telegram",
    "twitter": "twitter",
}


class TokenReader(Protocol):
    async def read_token(self, address: str, name: str) -> Any: ...


def _normalize(field: str, value: Any) -> Any:
    if field == "decimals":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"decimals returned {type(value).__name__}")
        return value
    if value is None:
        return UNSET
    text = str(value).strip()
    return text if text else UNSET


class MetadataEnricher:
    """Fetches symbol, decimals, description and social links for a token.

    The six reads run concurrently and fail independently: any error for one
    field leaves that field ``UNSET`` and never affects the others. There
    are no retries.
    """

    def __init__(self, chain: TokenReader) -> None:
        self._chain = chain

    async def _read(self, address: str, field: str) -> Any:
        try:
            raw = await self._chain.read_token(address, _FIELDS[field])
            return _normalize(field, raw)
        except Exception as exc:
            logger.debug(
                "Metadata %s unavailable for %s: %s", field, short_addr(address), exc
            )
            return UNSET

    async def enrich(self, address: str) -> TokenMetadata:
        names = list(_FIELDS)
        values = await asyncio.gather(*(self._read(address, n) for n in names))
        metadata = TokenMetadata(**dict(zip(names, values)))
        missing = [n for n, v in zip(names, values) if v is UNSET]
        if missing:
            logger.info(
                "Token %s enriched with %d field(s) unset: %s",
                short_addr(address),
                len(missing),
                ", ".join(missing),
            )
        return metadata
