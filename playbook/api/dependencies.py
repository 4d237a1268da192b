"""
FastAPI dependency injection.

Dependencies provide instances of stores, services, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests (app.dependency_overrides)
- Configuration is centralized

Every core component receives its document store from here; nothing in
the core reaches for a global store.
"""

import logging
from datetime import date, datetime, timezone as dt_timezone
from typing import Annotated, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, HTTPException, Path, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.insights import InsightService
from ..core.logs import SessionLogRecorder
from ..core.programs import ProgramDocumentStore
from ..core.store import DocumentStore
from ..infrastructure.anthropic.client import AnthropicConfig, AnthropicTextClient

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Shared store instances (one per process)
_memory_store = None
_snowflake_store = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def get_document_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> DocumentStore:
    """
    Provide the process-wide document store.

    In mock mode this is an in-memory store shared across requests, so
    data saved by one request is visible to the next (and to open
    streams). Otherwise it's the Snowflake-backed store, which opens a
    connection per operation.
    """
    global _memory_store, _snowflake_store

    if settings.store_mock_mode:
        if _memory_store is None:
            from ..infrastructure.memory import InMemoryDocumentStore
            _memory_store = InMemoryDocumentStore()
            logger.info("Created shared in-memory document store")
        return _memory_store

    if _snowflake_store is None:
        from ..infrastructure.snowflake import SnowflakeConfig, SnowflakeDocumentStore
        config = SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        )
        _snowflake_store = SnowflakeDocumentStore(
            config,
            table=settings.snowflake_documents_table,
            poll_interval=settings.snowflake_poll_interval_seconds,
        )
        logger.info(
            "Created Snowflake document store",
            extra={"table": settings.snowflake_documents_table},
        )
    return _snowflake_store


def reset_document_store() -> None:
    """Forget the shared store instances. Used by tests."""
    global _memory_store, _snowflake_store
    _memory_store = None
    _snowflake_store = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_program_store(
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> ProgramDocumentStore:
    return ProgramDocumentStore(store)


def local_clock(timezone: str):
    """
    Clock returning today's date in the given IANA timezone.

    Falls back to UTC for an unknown zone name rather than failing every
    log commit over a config typo.
    """
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone, using UTC for log dates", extra={"timezone": timezone})
        zone = dt_timezone.utc

    def today() -> date:
        return datetime.now(zone).date()

    return today


def get_log_recorder(
    player_id: Annotated[str, Path(min_length=1)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionLogRecorder:
    """
    Provide a recorder for the player in the path.

    Over HTTP each request stages and commits in one go, so a fresh
    recorder per request is all the staging state we need.
    """
    return SessionLogRecorder(store, player_id, clock=local_clock(settings.local_timezone))


def get_insight_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InsightService:
    """
    Provide InsightService with an Anthropic client.

    Without an API key the service has no client and answers with the
    unavailable placeholder instead of failing the request.
    """
    client: Optional[AnthropicTextClient] = None
    if settings.anthropic_api_key:
        client = AnthropicTextClient(AnthropicConfig(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.anthropic_max_tokens,
            temperature=settings.anthropic_temperature,
        ))
    else:
        logger.debug("No Anthropic API key configured, insights disabled")

    return InsightService(
        client,
        max_retries=settings.insight_max_retries,
        initial_delay=settings.insight_initial_backoff_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]
ProgramStoreDep = Annotated[ProgramDocumentStore, Depends(get_program_store)]
LogRecorderDep = Annotated[SessionLogRecorder, Depends(get_log_recorder)]
InsightServiceDep = Annotated[InsightService, Depends(get_insight_service)]
