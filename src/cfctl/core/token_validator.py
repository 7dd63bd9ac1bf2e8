"""Offline session-token inspection.

Decodes the claim segment of a three-part session token and answers
the two questions the login flow asks of it: *has it expired?* and
*does its role allow app-tier use?*  The signature is never checked —
that is the identity service's job — and claims are derived afresh on
every call, never cached.

Every function in this module is pure apart from reading the clock
when ``now`` is not supplied.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime, timezone

from cfctl.core.models import RoleType, TokenClaims
from cfctl.exceptions import (
    InvalidRoleError,
    InvalidTokenFormatError,
    TokenExpiredError,
)

APP_TOKEN_ROLES: frozenset[RoleType] = frozenset(
    {RoleType.DOMAIN_ADMIN, RoleType.WORKSPACE_OWNER},
)
"""Roles an app token must carry."""

_REGENERATE_HINT: str = (
    "Please generate a new App with appropriate permissions and log in again."
)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _b64url_decode(segment: str) -> bytes:
    """Decode unpadded base64url, restoring the padding first."""
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def decode(token: str) -> TokenClaims:
    """Decode the claims carried by *token*.

    Raises
    ------
    InvalidTokenFormatError
        If the token does not have exactly three ``.``-separated
        segments, the payload is not a base64url JSON object, or the
        ``exp`` claim is missing or not numeric.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise InvalidTokenFormatError(
            f"Invalid token format: expected 3 segments, got {len(parts)}.",
        )

    try:
        payload = json.loads(_b64url_decode(parts[1]))
    except (binascii.Error, ValueError, UnicodeError) as exc:
        raise InvalidTokenFormatError(
            f"Failed to decode token payload: {exc}",
        ) from exc

    if not isinstance(payload, dict):
        raise InvalidTokenFormatError("Token payload is not a claim set.")

    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise InvalidTokenFormatError("Expiration time (exp) not found in token.")

    try:
        expiry = datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidTokenFormatError(f"Invalid expiration time: {exp}") from exc

    return TokenClaims(expiry=expiry, role=RoleType.parse(payload.get("rol")))


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def is_expired(claims: TokenClaims, now: datetime | None = None) -> bool:
    """Return ``True`` iff *now* is strictly after ``claims.expiry``."""
    current = now if now is not None else datetime.now(timezone.utc)
    return current > claims.expiry


def check_role(claims: TokenClaims) -> None:
    """Ensure *claims* carry a role that app-tier flows accept.

    Raises
    ------
    InvalidRoleError
        When the role is absent or not one of :data:`APP_TOKEN_ROLES`.
    """
    if claims.role not in APP_TOKEN_ROLES:
        role = claims.role.value if claims.role is not None else "none"
        raise InvalidRoleError(
            f"App token must have either DOMAIN_ADMIN or WORKSPACE_OWNER role (got {role}).",
            hint=_REGENERATE_HINT,
        )


def is_token_expired(token: str, now: datetime | None = None) -> bool:
    """Decode *token* and report expiry; malformed tokens count as expired."""
    try:
        claims = decode(token)
    except InvalidTokenFormatError:
        return True
    return is_expired(claims, now)


def validate_app_token(token: str, now: datetime | None = None) -> TokenClaims:
    """Run every app-token check, raising on the first failure.

    Raises
    ------
    InvalidTokenFormatError
        If the token cannot be decoded.
    TokenExpiredError
        If the token has already expired.
    InvalidRoleError
        If the role is not allowed for app use.
    """
    claims = decode(token)
    if is_expired(claims, now):
        raise TokenExpiredError(
            "Your App token has expired.",
            hint="Please generate a new App and log in again.",
        )
    check_role(claims)
    return claims


def mask_token(token: str) -> str:
    """Return a display-safe rendition of *token*."""
    if len(token) <= 10:
        return "*" * len(token)
    return f"{token[:5]}...{token[-5:]}"
