"""
X-API-Key authentication for the /api routes

Keys come from API_KEY_USER1..API_KEY_USER5 and are read once per process
(call ``get_valid_api_keys.cache_clear()`` after changing the environment).
"""

import os
from functools import lru_cache
from typing import Dict

from dotenv import load_dotenv
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

load_dotenv()

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

MAX_API_USERS = 5
DEV_API_KEY = "dev-key-insecure"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


@lru_cache(maxsize=1)
def get_valid_api_keys() -> Dict[str, str]:
    """Map of API key -> user id ("user1" ... "user5")"""
    configured = {
        os.environ[f"API_KEY_USER{n}"]: f"user{n}"
        for n in range(1, MAX_API_USERS + 1)
        if os.getenv(f"API_KEY_USER{n}")
    }
    if configured:
        return configured

    # Local development only
    if os.getenv("ENVIRONMENT") == "development":
        return {DEV_API_KEY: "dev_user"}
    raise ValueError("No API keys configured: set API_KEY_USER1 (or ENVIRONMENT=development)")


async def verify_api_key(api_key: str = Security(API_KEY_HEADER)) -> str:
    """
    FastAPI dependency returning the caller's user id

        @app.post("/api/clv/calculate")
        async def route(user: str = Depends(verify_api_key)):
            ...
    """
    if not api_key:
        raise _unauthorized("API key required. Include 'X-API-Key' header.")

    user = get_valid_api_keys().get(api_key)
    if user is None:
        raise _unauthorized("Invalid API key")
    return user
