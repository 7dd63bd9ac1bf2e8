"""Domain models for cfctl.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access.  They carry zero I/O, zero dependencies on
external packages, and must remain pure across the entire lifecycle.

Environment records come in two tagged variants, one per storage tier,
so that each exposes only the fields valid in that tier:

* :class:`AppEnvironment` — application tier (tokens, never passwords).
* :class:`UserEnvironment` — user-cache tier (cached users).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class EnvironmentKind(str, Enum):
    """Which login branch an environment uses."""

    APP = "app"
    USER = "user"


class Scope(str, Enum):
    """Authorization breadth requested when granting a session token."""

    DOMAIN = "DOMAIN"
    WORKSPACE = "WORKSPACE"
    USER = "USER"


class RoleType(str, Enum):
    """Role reported by the identity service for the signed-in user."""

    DOMAIN_ADMIN = "DOMAIN_ADMIN"
    WORKSPACE_OWNER = "WORKSPACE_OWNER"
    WORKSPACE_MEMBER = "WORKSPACE_MEMBER"
    USER = "USER"

    @classmethod
    def parse(cls, value: object) -> RoleType | None:
        """Return the member named *value*, or ``None`` when unknown."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class AppToken:
    """A raw bearer token attached to an app-kind environment."""

    token: str


@dataclass(frozen=True, slots=True)
class CachedUser:
    """A user whose credentials are cached for a user-kind environment."""

    user_id: str
    """Login identifier, unique within one environment."""

    encrypted_password: str
    """Vault ciphertext of the password — never plaintext."""

    token: str
    """Last access token granted to this user."""


@dataclass(frozen=True, slots=True)
class AppEnvironment:
    """Environment settings as recorded in the application tier."""

    name: str
    endpoint: str | None = None
    proxy: bool = False
    token: str | None = None
    """Legacy single-token field."""
    tokens: tuple[AppToken, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class UserEnvironment:
    """Environment settings as recorded in the user-cache tier."""

    name: str
    endpoint: str | None = None
    proxy: bool = False
    users: tuple[CachedUser, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class EnvironmentListing:
    """One row of the merged environment listing."""

    name: str
    is_current: bool
    tiers: tuple[str, ...]
    """Tier names the environment appears in, in precedence order."""


# ---------------------------------------------------------------------------
# Transient values
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Decoded payload of a session token.  Never persisted."""

    expiry: datetime
    """Timezone-aware UTC expiry instant."""

    role: RoleType | None
    """Role claim, or ``None`` when absent or unrecognised."""


@dataclass(frozen=True, slots=True)
class Workspace:
    """A workspace the signed-in user may scope a token to."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class IssuedTokens:
    """Access/refresh pair returned by the token issue call."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class Identity:
    """Result of the *who am I* call."""

    domain_id: str
    role_type: RoleType


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Outcome of a successful login."""

    environment: str
    kind: EnvironmentKind
    user_id: str | None = None
    scope: Scope | None = None
    workspace_id: str = ""
    token_added: bool = False
    """App logins only: whether the token was new to the environment."""
