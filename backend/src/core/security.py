"""
Security utilities for bearer token handling and HTTP response hardening.

Staff bearer tokens are HS256 JWTs issued by the hosted identity provider
and signed with the project's shared JWT secret. This module verifies them
(signature, expiry, audience) and extracts the identity claims the
authorization policy needs. ``create_access_token`` mints tokens with the
same shape, for operational tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from src.core.config import get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)


class SecurityError(Exception):
    """Base exception for security-related errors."""

    def __init__(self, message: str, code: str, **context: Any):
        super().__init__(message)
        self.code = code
        self.context = context


class TokenError(SecurityError):
    """Exception raised for token-related errors."""

    pass


def create_access_token(
    subject: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a signed access token in the identity provider's claim layout.

    Args:
        subject: Identity provider user id (``sub`` claim)
        email: Email address of the identity (``email`` claim)
        expires_delta: Optional custom lifetime
        extra_claims: Additional claims merged into the payload

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )

    claims: Dict[str, Any] = {
        "sub": subject,
        "email": email,
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": expire,
    }
    if extra_claims:
        claims.update(extra_claims)

    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    logger.debug(
        "Access token created",
        subject=subject,
        expires_at=expire.isoformat(),
    )
    return token


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a bearer token.

    Args:
        token: JWT string from the Authorization header

    Returns:
        Dictionary of verified claims

    Raises:
        TokenError: If the token is empty, expired, malformed or carries
            the wrong signature or audience
    """
    if not token:
        raise TokenError("Token cannot be empty", code="EMPTY_TOKEN")

    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except ExpiredSignatureError as e:
        logger.info("Token has expired")
        raise TokenError("Token has expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(
            "Invalid token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TokenError(
            "Invalid token",
            code="TOKEN_INVALID",
            original_error=str(e),
        ) from e

    logger.debug(
        "Token decoded successfully",
        subject=payload.get("sub"),
        expires_at=payload.get("exp"),
    )
    return payload


def get_token_email(payload: Dict[str, Any]) -> str:
    """
    Extract the normalized email identity from verified claims.

    Raises:
        TokenError: If the token carries no email claim
    """
    email = payload.get("email")
    if not isinstance(email, str) or "@" not in email:
        raise TokenError("Token has no email identity", code="TOKEN_NO_EMAIL")
    return email.strip().lower()


def get_security_headers() -> Dict[str, str]:
    """
    Response headers applied to every response.

    HSTS is only sent in production, where TLS termination is guaranteed.
    """
    settings = get_settings()
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    }
    if settings.is_production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers
