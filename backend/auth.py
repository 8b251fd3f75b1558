"""
Shared-secret gate in front of every route, `/health` included.

Expects `Authorization: Bearer <API_KEY>`. A missing header is a 401, any
other value a 403. The core services never see unauthenticated requests.
"""

import logging
import secrets

from fastapi import Request
from fastapi.responses import PlainTextResponse

from settings import settings

logger = logging.getLogger(__name__)


async def api_key_gate(request: Request, call_next):
    supplied = request.headers.get("Authorization")
    if supplied is None:
        return PlainTextResponse("API Key is missing.", status_code=401)

    expected = f"Bearer {settings.api_key}"
    if not settings.api_key or not secrets.compare_digest(
        supplied.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning(f"Rejected request to {request.url.path}: invalid API key")
        return PlainTextResponse("Invalid API Key.", status_code=403)

    return await call_next(request)
