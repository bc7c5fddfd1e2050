"""Domain vocabulary and wire schemas for the environmental snapshot and chat router.

Every provider payload has a default instance of identical shape carrying
"unavailable" sentinels, so a snapshot is structurally complete even when all
upstreams fail. Wire JSON uses camelCase aliases; Python code uses snake_case.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from civic_assistant.errors import ErrorKind

UNAVAILABLE = "N/A"


class _CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, snake_case attributes, frozen."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class AISource(str, Enum):
    """Identity of the chat backend that should or did answer."""
    LIVE = "live"
    GENERAL = "general"

    @property
    def other(self) -> "AISource":
        """The fallback backend for this one."""
        return AISource.GENERAL if self is AISource.LIVE else AISource.LIVE


# ---------------------------------------------------------------------------
# Request-side types
# ---------------------------------------------------------------------------


class Location(_CamelModel):
    """Resolved geographic location of the caller."""
    lat: float
    lng: float
    address: str


class UserContext(_CamelModel):
    """Personalization fields folded into provider prompts and chat instructions."""
    name: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)


class ConversationRole(str, Enum):
    """Speaker of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(_CamelModel):
    """One message of caller-owned conversation history."""
    role: ConversationRole
    text: str

    @model_validator(mode="before")
    @classmethod
    def _accept_parts_shape(cls, data: Any) -> Any:
        """Accept the chat UI's `{role: user|model, parts: [{text}]}` shape as well."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "text" not in data and isinstance(data.get("parts"), list):
            parts = data.pop("parts")
            first = parts[0] if parts else {}
            data["text"] = first.get("text", "") if isinstance(first, dict) else ""
        if data.get("role") != ConversationRole.USER.value:
            data["role"] = ConversationRole.ASSISTANT.value
        return data


@dataclass(frozen=True)
class Attachment:
    """Binary file sent alongside a chat message."""
    mime_type: str
    data: bytes
    filename: str | None = None

    @property
    def base64_data(self) -> str:
        """Payload encoded the way inline-data upstreams expect."""
        return base64.b64encode(self.data).decode("ascii")


# ---------------------------------------------------------------------------
# Provider payloads
# ---------------------------------------------------------------------------


class WeatherPayload(_CamelModel):
    """Current conditions; numbers are Fahrenheit, percent and mph."""
    temperature: Union[float, str] = UNAVAILABLE
    feels_like: Union[float, str] = UNAVAILABLE
    conditions: str = "Data unavailable"
    humidity: Union[float, str] = UNAVAILABLE
    uv_index: Union[float, str] = UNAVAILABLE
    wind_speed: Union[float, str] = UNAVAILABLE
    precipitation: Union[bool, str] = False
    heat_warning: Union[bool, str] = False


class AirQualityPayload(_CamelModel):
    """Air quality index and pollutant summary."""
    aqi: Union[int, str] = UNAVAILABLE
    quality: str = "Data unavailable"
    pm25: Union[float, str] = UNAVAILABLE
    pollutants: List[str] = Field(default_factory=list)
    health_impact: Optional[str] = None


class TrafficPayload(_CamelModel):
    """Road conditions around the caller."""
    conditions: str = "Moderate"
    estimated_delay: Union[float, str] = UNAVAILABLE
    closures: List[str] = Field(default_factory=lambda: ["No major closures reported"])
    accidents: List[str] = Field(default_factory=list)
    hotspots: List[str] = Field(default_factory=list)


class HealthPayload(_CamelModel):
    """Public-health and allergen outlook."""
    pollen_count: str = "Moderate"
    flu_activity: str = "Low"
    allergens: List[str] = Field(default_factory=list)
    covid_updates: List[str] = Field(default_factory=list)
    health_advisories: List[str] = Field(default_factory=list)


class CrimePayload(_CamelModel):
    """Recent safety incidents, general areas only."""
    shootings: List[str] = Field(default_factory=list)
    robberies: List[str] = Field(default_factory=list)
    incidents: List[str] = Field(default_factory=list)
    areas_to_avoid: List[str] = Field(default_factory=list)


class MarketPayload(_CamelModel):
    """Date-scoped closures and modified business hours."""
    bank_holidays: List[str] = Field(default_factory=list)
    market_closures: List[str] = Field(default_factory=list)
    business_hours: List[str] = Field(default_factory=list)
    government_offices: List[str] = Field(default_factory=list)


P = TypeVar("P", bound=BaseModel)


@dataclass(frozen=True)
class ProviderResult(Generic[P]):
    """Outcome of one provider fetch: real data, or the default plus why."""
    domain: str
    ok: bool
    data: P
    error: ErrorKind | None = None
    cached: bool = False

    @classmethod
    def success(cls, domain: str, data: P, *, cached: bool = False) -> "ProviderResult[P]":
        return cls(domain=domain, ok=True, data=data, cached=cached)

    @classmethod
    def failure(cls, domain: str, default: P, error: ErrorKind) -> "ProviderResult[P]":
        return cls(domain=domain, ok=False, data=default, error=error)


class EnvironmentalSnapshot(_CamelModel):
    """Composite of all six domains for one location; always fully shaped."""
    weather: WeatherPayload
    air_quality: AirQualityPayload
    traffic: TrafficPayload
    health: HealthPayload
    crime: CrimePayload
    markets: MarketPayload
    unavailable: List[str] = Field(default_factory=list)
    last_updated: datetime
    location: Location


@dataclass(frozen=True)
class ChatReply:
    """Assistant text tagged with the backend that actually produced it."""
    text: str
    source: AISource
    fallback_used: bool = False
    attempts: list[AISource] = field(default_factory=list)
