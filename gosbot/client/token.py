from __future__ import annotations
from typing import Optional

import httpx

from gosbot.shared.config import DEFAULT_PLATFORM, BotSettings
from gosbot.shared.errors import AcquisitionError
from gosbot.shared.log import get_logger
from gosbot.shared.utils import ensure_uuid_v4

logger = get_logger(__name__)


def resolve_session_id(session_id: Optional[str]) -> str:
    """Keep a UUID-v4 shaped session id, replace anything else with a new one."""
    return ensure_uuid_v4(session_id)


async def acquire_token(
    session_id: Optional[str] = None,
    platform: str = DEFAULT_PLATFORM,
    *,
    settings: Optional[BotSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Exchange a session id for a bearer token.

    One POST to ``settings.init_url`` with ``{"platform", "sessionId"}``,
    no retry. ``client`` lets the caller supply its own AsyncClient
    (connection reuse, mock transports); it is not closed here.

    Raises:
        AcquisitionError: transport error, non-2xx status, non-JSON body,
            or a body without a string ``token``
    """
    settings = settings or BotSettings()
    session_id = resolve_session_id(session_id)
    body = {"platform": platform, "sessionId": session_id}

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            timeout=settings.http_timeout,
            headers={"User-Agent": settings.user_agent},
        )

    try:
        response = await client.post(settings.init_url, json=body)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        logger.warning("Token request failed: %s", e, extra={"session_id": session_id})
        raise AcquisitionError(f"Token request to {settings.init_url} failed: {e}") from e
    except ValueError as e:
        raise AcquisitionError(f"Token response is not JSON: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    token = data.get("token") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        raise AcquisitionError("Token response has no 'token' field")

    logger.debug("Acquired token", extra={"session_id": session_id})
    return token
