"""
Clerk session authentication.

Clerk signs session tokens with RS256; they are verified offline with the
instance's PEM public key (``CLERK_JWT_KEY``). The ``sub`` claim is the user
id every record is owned by.
"""

import logging
from typing import Iterable, Optional

import jwt
from fastapi import HTTPException, Request, status

import config

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


def extract_session_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


def verify_session_token(token: str, public_key: str,
                         authorized_parties: Iterable[str] = ()) -> str:
    """Return the user id of a valid session token, raise jwt.InvalidTokenError otherwise."""
    claims = jwt.decode(
        token,
        public_key,
        algorithms=["RS256"],
        options={"require": ["sub", "exp"]},
        leeway=5,
    )
    parties = list(authorized_parties)
    if parties and claims.get("azp") not in parties:
        raise jwt.InvalidTokenError(f"Unauthorized party: {claims.get('azp')}")
    return claims["sub"]


def get_current_user_id(request: Request) -> str:
    token = extract_session_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    if not config.CLERK_JWT_KEY:
        logger.error("CLERK_JWT_KEY is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Authentication is not configured: CLERK_JWT_KEY is missing")

    try:
        return verify_session_token(token, config.CLERK_JWT_KEY, config.CLERK_AUTHORIZED_PARTIES)
    except jwt.InvalidTokenError as e:
        logger.info("Rejected session token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
