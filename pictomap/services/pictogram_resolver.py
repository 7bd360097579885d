"""
Pictogram lookup for points of interest using the Global Symbols label search.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

from pictomap.domain.errors import PermanentNetworkFailure
from pictomap.domain.models import Pictogram, PointOfInterest
from pictomap.services.http import get_json
from pictomap.services.naming import nameify
from pictomap.services.pictogram_cache import PictogramCache, TransientPictogramCache, make_cache_key
from pictomap.services.retry import RetryPolicy
from pictomap.settings import Settings

logger = logging.getLogger(__name__)

GLOBAL_SYMBOLS_API_URL = "https://globalsymbols.com/api/v1/labels/search"


class PictogramResolver(Protocol):
    async def resolve(self, poi: PointOfInterest) -> Optional[Pictogram]: ...


def format_caption(poi: PointOfInterest, include_type: bool) -> str:
    if include_type:
        return f"{nameify(poi.type)}: {poi.name}"
    return poi.name


def pictogram_from_candidate(
    candidate: Any,
    poi: PointOfInterest,
    include_type_in_display_text: bool = False,
    include_type_in_aria_label: bool = True,
) -> Pictogram:
    """Build a Pictogram from one label-search candidate.

    Raises KeyError/TypeError when the candidate lacks an id or image url.
    """
    return Pictogram(
        id=str(candidate["id"]),
        url=str(candidate["picto"]["image_url"]),
        display_text=format_caption(poi, include_type_in_display_text),
        label=format_caption(poi, include_type_in_aria_label),
        description=candidate.get("description"),
        metadata=candidate,
    )


class GlobalSymbolsPictogramResolver:
    """
    Resolve a POI to a pictogram by searching its type in one symbol set.

    Lookups are cached per (symbol set, type), including empty results, so a
    type with no symbol is only searched once per expiration window. Network
    and parse failures propagate to the caller.
    """

    def __init__(
        self,
        cache: Optional[PictogramCache] = None,
        api_url: str = GLOBAL_SYMBOLS_API_URL,
        symbol_set: str = "arasaac",
        language: str = "eng",
        include_type_in_display_text: bool = False,
        include_type_in_aria_label: bool = True,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.cache = cache if cache is not None else TransientPictogramCache()
        self.api_url = api_url
        self.symbol_set = symbol_set
        self.language = language
        self.include_type_in_display_text = include_type_in_display_text
        self.include_type_in_aria_label = include_type_in_aria_label
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy(max_retries=max_retries, delay=retry_delay)
        self._pending: Dict[str, asyncio.Future] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, cache: Optional[PictogramCache] = None
    ) -> "GlobalSymbolsPictogramResolver":
        return cls(
            cache=cache,
            api_url=settings.GLOBAL_SYMBOLS_API_URL,
            symbol_set=settings.PICTOGRAM_SYMBOL_SET,
            language=settings.PICTOGRAM_LANGUAGE,
            include_type_in_display_text=settings.PICTOGRAM_INCLUDE_TYPE_IN_DISPLAY_TEXT,
            include_type_in_aria_label=settings.PICTOGRAM_INCLUDE_TYPE_IN_ARIA_LABEL,
            max_retries=settings.PICTOGRAM_MAX_RETRIES,
            retry_delay=settings.PICTOGRAM_RETRY_DELAY_SEC,
            timeout=settings.HTTP_TIMEOUT_SEC,
        )

    def _build(self, payload: Any, poi: PointOfInterest) -> Optional[Pictogram]:
        if not payload:
            return None
        return pictogram_from_candidate(
            payload[0],
            poi,
            include_type_in_display_text=self.include_type_in_display_text,
            include_type_in_aria_label=self.include_type_in_aria_label,
        )

    async def resolve(self, poi: PointOfInterest) -> Optional[Pictogram]:
        key = make_cache_key(self.symbol_set, poi.type)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                pictogram = self._build(cached, poi)
                logger.debug("Pictogram cache hit %s", key)
                return pictogram
            except (KeyError, TypeError, IndexError, AttributeError) as exc:
                logger.warning("Ignoring unusable cached pictogram payload for %s: %s", key, exc)

        logger.debug("Pictogram cache miss %s", key)
        payload = await self._lookup_shared(key, poi.type)
        return self._build(payload, poi)

    async def _lookup_shared(self, key: str, term: str) -> Any:
        # Concurrent resolutions of the same type wait on one request.
        pending = self._pending.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup_and_store(key, term))
            self._pending[key] = pending
            pending.add_done_callback(lambda _f: self._pending.pop(key, None))
        return await asyncio.shield(pending)

    async def _lookup_and_store(self, key: str, term: str) -> Any:
        payload = await self.retry_policy.execute(lambda: self._search(term))
        if not isinstance(payload, list):
            raise PermanentNetworkFailure(f"Unexpected label search response for {term!r}")
        if payload:
            candidate = payload[0]
            picto = candidate.get("picto") if isinstance(candidate, dict) else None
            if not isinstance(picto, dict) or "id" not in candidate or not picto.get("image_url"):
                raise PermanentNetworkFailure(f"Malformed label search candidate for {term!r}")
        # Cache only the first candidate; empty lists are remembered as "no match".
        payload = payload[:1]
        self.cache.put(key, payload)
        return payload

    async def _search(self, term: str) -> Any:
        params = {
            "query": term,
            "language": self.language,
            "language_iso_format": "639-3",
            "limit": "1",
            "symbolSet": self.symbol_set,
        }
        return await get_json(self.api_url, params=params, timeout=self.timeout)
