"""Common machinery for the six environmental data providers.

A provider wraps one upstream call for one data domain: it builds the cache
key, reads through the shared cache, asks the upstream for a single JSON
object, validates it into the domain payload and writes it back under the
domain's TTL. Upstream and parse failures become `ProviderResult.failure`
with the domain default; they never raise out of `fetch`.
"""

from __future__ import annotations

import datetime as dt
import json
from typing import Callable, ClassVar, Generic, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from civic_assistant.cache_store import CacheStore
from civic_assistant.domain import Location, ProviderResult, UserContext
from civic_assistant.errors import ParseError, UpstreamError
from civic_assistant.json_extract import extract_json_object
from civic_assistant.llm.base import TextCompleter
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="providers/base")

P = TypeVar("P", bound=BaseModel)


def json_template(fields: dict[str, str]) -> str:
    """Render the field/description template the upstream is asked to fill."""
    return json.dumps(fields, indent=2, ensure_ascii=False)


class ProviderClient(Generic[P]):
    """Base class; subclasses set the class attributes and `build_prompt`."""

    domain: ClassVar[str]
    payload_model: ClassVar[Type[BaseModel]]
    system_message: ClassVar[str]
    date_scoped: ClassVar[bool] = False

    def __init__(
        self,
        completer: TextCompleter,
        cache: CacheStore,
        *,
        ttl_seconds: float,
        coordinate_precision: int = 2,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self._completer = completer
        self._cache = cache
        self.ttl_seconds = ttl_seconds
        self.coordinate_precision = coordinate_precision
        self._today = today
        self._logger = get_tagged_logger(f"{__name__}.{self.domain}", tag=f"providers/{self.domain}")

    def default_payload(self) -> P:
        """Payload with the domain's 'unavailable' sentinels."""
        return self.payload_model()

    def cache_key(self, location: Location) -> str:
        """Domain + rounded coordinates (+ today's date for date-scoped domains).

        Personalization is deliberately left out: callers at the same location
        share an entry even when their UserContext differs.
        """
        p = self.coordinate_precision
        key = f"{self.domain}:{location.lat:.{p}f}:{location.lng:.{p}f}"
        if self.date_scoped:
            key = f"{key}:{self._today().isoformat()}"
        return key

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        """Return the upstream prompt; must embed the JSON template."""
        raise NotImplementedError

    @classmethod
    def schema_keys(cls) -> frozenset[str]:
        """Field names and wire aliases of the payload model."""
        keys = set()
        for name, field in cls.payload_model.model_fields.items():
            keys.add(name)
            if field.alias:
                keys.add(field.alias)
        return frozenset(keys)

    def parse(self, raw_text: str) -> P:
        """Extract and validate the payload, raising ParseError on mismatch."""
        obj = extract_json_object(raw_text)
        if not obj.keys() & self.schema_keys():
            raise ParseError(f"{self.domain} payload has none of the expected fields: {sorted(obj)[:10]}")
        try:
            return self.payload_model.model_validate(obj)
        except PydanticValidationError as exc:
            raise ParseError(f"{self.domain} payload did not match schema: {exc.error_count()} errors") from exc

    def fetch(self, location: Location, user_context: UserContext) -> ProviderResult[P]:
        """Return cached or freshly fetched data, or the default on any upstream failure."""
        key = self.cache_key(location)
        cached = self._cache.get(key)
        if cached is not None:
            self._logger.debug("Cache hit for %s", key)
            return ProviderResult.success(self.domain, cached, cached=True)

        prompt = self.build_prompt(location, user_context)
        try:
            raw = self._completer.complete(prompt, system=self.system_message)
            payload = self.parse(raw)
        except UpstreamError as exc:
            self._logger.warning(
                "Falling back to default payload",
                extra={"domain": self.domain, "error_kind": exc.kind.value, "error": str(exc)},
            )
            return ProviderResult.failure(self.domain, self.default_payload(), exc.kind)

        self._cache.set(key, payload, self.ttl_seconds)
        self._logger.info("Fetched %s (cached for %ss)", key, self.ttl_seconds)
        return ProviderResult.success(self.domain, payload)
