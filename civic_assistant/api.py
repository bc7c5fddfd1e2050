"""HTTP API for the environmental alerts dashboard and the civic chat assistant."""

import json
import time
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from civic_assistant.aggregator import validate_location
from civic_assistant.domain import Attachment, ConversationTurn, UserContext
from civic_assistant.errors import ChatFailure, InternalError, RateLimitExceeded, ValidationError
from civic_assistant.rate_limiter import SlidingWindowRateLimiter
from civic_assistant.services import Services
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="civic_assistant/api")

SUPPORTED_UPLOAD_TYPES = frozenset({
    "image/png", "image/jpeg", "image/webp", "image/heic", "image/heif",
    "audio/wav", "audio/mp3", "audio/aiff", "audio/aac", "audio/ogg", "audio/flac",
    "video/mp4", "video/mpeg", "video/mov", "video/avi", "video/x-flv", "video/mpg",
    "video/webm", "video/wmv", "video/3gp",
    "text/plain", "text/html", "text/css", "text/javascript", "application/json",
    "application/pdf", "application/rtf",
    "text/x-typescript", "text/x-python", "text/x-java", "text/x-c", "text/x-cpp",
    "text/x-csharp", "text/x-php", "text/x-ruby", "text/x-go", "text/x-rust",
    "text/x-swift", "text/x-kotlin", "text/x-scala", "text/x-r", "text/x-sql",
    "text/xml", "application/xml", "text/csv", "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})


def get_services(request: Request) -> Services:
    """Return the process-wide service container attached at app creation."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise InternalError("Service container is not initialised")
    return services


router = APIRouter()


class EnvironmentalDataRequest(BaseModel):
    """Incoming dashboard refresh payload."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    location: Optional[dict[str, Any]] = None
    user_preferences: Optional[UserContext] = None


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def client_identity(request: Request, services: Services) -> str:
    """Rate-limit identity: caller IP, optionally taken from X-Forwarded-For."""
    if services.settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _require_admission(limiter: SlidingWindowRateLimiter, identity: str) -> None:
    """Raise RateLimitExceeded when the caller is over its window."""
    if not limiter.admit(identity):
        raise RateLimitExceeded(identity, limiter.retry_after(identity))


def _require_non_production(services: Services) -> None:
    """Introspection endpoints do not exist in production."""
    if services.settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


def parse_history(raw: str | None) -> list[ConversationTurn]:
    """Decode the JSON-encoded conversation history form field."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("Invalid JSON in conversationHistory or userData") from exc
    if not isinstance(data, list):
        raise ValidationError("conversationHistory must be an array")
    try:
        return [ConversationTurn.model_validate(item) for item in data]
    except PydanticValidationError as exc:
        raise ValidationError("conversationHistory contains a malformed turn") from exc


def parse_user_data(raw: str | None) -> UserContext:
    """Decode the JSON-encoded user profile form field."""
    if not raw:
        return UserContext()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("Invalid JSON in conversationHistory or userData") from exc
    if data is None:
        return UserContext()
    if not isinstance(data, dict):
        raise ValidationError("userData must be an object")
    try:
        return UserContext.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("userData contains malformed fields") from exc


def read_upload(file: UploadFile, max_bytes: int) -> Attachment:
    """Read an uploaded file, enforcing the type allow-list and size cap."""
    mime_type = file.content_type or "application/octet-stream"
    if mime_type not in SUPPORTED_UPLOAD_TYPES:
        raise ValidationError(f"Unsupported file type: {mime_type}")
    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds the maximum limit of {format_file_size(max_bytes)}",
        )
    return Attachment(mime_type=mime_type, data=data, filename=file.filename)


def format_file_size(size: int) -> str:
    """Human-readable byte count, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


@router.post("/environmental-data")
def environmental_data(
    req: EnvironmentalDataRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    """Return the six-domain environmental snapshot for the caller's location."""
    location = validate_location(req.location)
    identity = client_identity(request, services)
    _require_admission(services.environment_limiter, identity)

    snapshot = services.aggregator.aggregate(location, req.user_preferences or UserContext())
    return JSONResponse(snapshot.model_dump(mode="json", by_alias=True))


@router.post("/chat/send")
def send_message(
    request: Request,
    message: str = Form(default=""),
    conversation_history: Optional[str] = Form(default=None, alias="conversationHistory"),
    user_data: Optional[str] = Form(default=None, alias="userData"),
    file: Optional[UploadFile] = File(default=None),
    services: Services = Depends(get_services),
):
    """Answer one chat message, routing between the LIVE and GENERAL backends."""
    if not message or not message.strip():
        raise ValidationError("Message is required and must be a non-empty string")
    if len(message) > services.settings.max_user_message_chars:
        raise ValidationError(
            f"Message too long; limit {services.settings.max_user_message_chars} characters."
        )

    history = parse_history(conversation_history)
    user_context = parse_user_data(user_data)
    attachment = read_upload(file, services.settings.max_upload_bytes) if file is not None else None

    _require_admission(services.chat_limiter, client_identity(request, services))

    try:
        reply = services.chat.respond(message, history, user_context, attachment)
    except ChatFailure as exc:
        logger.error("Chat request failed: %s", exc)
        body = {
            "success": False,
            "error": "Failed to generate AI response",
            "aiSource": exc.ai_source.value,
        }
        if not services.settings.is_production:
            body["message"] = str(exc)
        return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return {
        "success": True,
        "response": reply.text,
        "aiSource": reply.source.value,
        "timestamp": _utc_now_iso(),
    }


@router.post("/chat/upload")
def upload_file(
    file: Optional[UploadFile] = File(default=None),
    services: Services = Depends(get_services),
):
    """Check that a file would be accepted as a chat attachment."""
    if file is None:
        raise ValidationError("No file uploaded")
    attachment = read_upload(file, services.settings.max_upload_bytes)
    size = len(attachment.data)
    return {
        "success": True,
        "message": "File uploaded successfully",
        "file": {
            "filename": attachment.filename,
            "mimetype": attachment.mime_type,
            "size": size,
            "sizeFormatted": format_file_size(size),
        },
    }


@router.get("/health")
def health(services: Services = Depends(get_services)):
    """Liveness probe."""
    return {
        "status": "healthy",
        "timestamp": _utc_now_iso(),
        "uptimeSeconds": round(time.monotonic() - services.started_at, 3),
        "environment": services.settings.environment,
    }


@router.get("/cache/stats")
def cache_stats(services: Services = Depends(get_services)):
    """Cache counters and per-key TTLs (non-production only)."""
    _require_non_production(services)
    stats = services.cache.stats()
    return {
        "stats": {"keys": stats.keys, "hits": stats.hits, "misses": stats.misses},
        "keys": [{"key": k, "ttlSeconds": ttl} for k, ttl in sorted(services.cache.ttl_remaining().items())],
        "rateLimiting": {
            "activeClients": services.environment_limiter.active_identities(),
        },
    }


@router.delete("/cache/clear")
def clear_cache(services: Services = Depends(get_services)):
    """Flush the cache (non-production only)."""
    _require_non_production(services)
    services.cache.flush()
    return {"message": "Cache cleared successfully"}
