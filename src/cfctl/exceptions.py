"""Custom exception hierarchy for cfctl.

All exceptions that cross layer boundaries must inherit from
:class:`CfctlError`.  Raw third-party exceptions (PyYAML, keyring,
httpx, cryptography) must NEVER propagate beyond the infrastructure
layer — they must be caught and re-raised as a typed subclass defined
here.

Hierarchy
---------
CfctlError
├── ConfigError
├── VaultError
│   ├── KeyStoreError
│   └── DecryptError
├── ValidationError
│   ├── InvalidTokenFormatError
│   ├── TokenExpiredError
│   └── InvalidRoleError
├── RPCError
├── UserCancelError
├── InputError
│   └── PasswordMismatchError
├── LoginError
└── DependencyMissingError
"""

from __future__ import annotations

from enum import Enum


class CfctlError(Exception):
    """Base exception for all cfctl errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration ---------------------------------------------------------

class ConfigError(CfctlError):
    """Raised when a configuration tier file is malformed or misused."""


# --- Vault -----------------------------------------------------------------

class VaultError(CfctlError):
    """Base class for credential-vault failures."""


class KeyStoreError(VaultError):
    """Raised when the OS secure key store cannot be read or written."""


class DecryptFailure(str, Enum):
    """Why a cached secret could not be decrypted."""

    MALFORMED = "malformed"
    """The stored text is not valid base64 or is shorter than the IV."""

    WRONG_KEY = "wrong_key"
    """The payload decoded but the plaintext is not valid UTF-8."""


class DecryptError(VaultError):
    """Raised when a cached secret cannot be decrypted.

    Never fatal to the login flow: callers fall back to prompting.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: DecryptFailure,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.reason: DecryptFailure = reason


# --- Token validation ------------------------------------------------------

class ValidationError(CfctlError):
    """Base class for session-token validation failures."""


class InvalidTokenFormatError(ValidationError):
    """Raised when a token is not a three-segment encoded claim set."""


class TokenExpiredError(ValidationError):
    """Raised when a token that must be current has already expired."""


class InvalidRoleError(ValidationError):
    """Raised when a token's role is not allowed for app-tier use."""


# --- Remote calls ----------------------------------------------------------

class RPCError(CfctlError):
    """Raised when a call to the identity service fails."""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.operation: str = operation


# --- User interaction ------------------------------------------------------

class UserCancelError(CfctlError):
    """Raised when the user explicitly quits an interactive prompt."""


class InputError(CfctlError):
    """Raised when a required value is empty or otherwise unusable."""


class PasswordMismatchError(InputError):
    """Raised when a re-entered password differs from the cached one."""


# --- Login orchestration ---------------------------------------------------

class FailureReason(str, Enum):
    """Terminal failure reasons of the login state machine."""

    NO_ENVIRONMENT = "no_environment"
    NO_ENDPOINT = "no_endpoint"
    PROXY_REQUIRED = "proxy_required"
    INVALID_ENVIRONMENT_NAME = "invalid_environment_name"
    NO_ACCESSIBLE_WORKSPACE = "no_accessible_workspace"
    PASSWORD_MISMATCH = "password_mismatch"
    RPC_FAILURE = "rpc_failure"


class LoginError(CfctlError):
    """Raised when the login flow ends in a ``FAILED`` state."""

    def __init__(
        self,
        message: str,
        *,
        reason: FailureReason,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.reason: FailureReason = reason


# --- Environment / tooling -------------------------------------------------

class DependencyMissingError(CfctlError):
    """Raised when an optional runtime dependency is not available."""
