"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters and the CLI
must satisfy.  Core code depends ONLY on these protocols — never on
concrete implementations — preserving the dependency inversion
principle.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from cfctl.core.models import (
    AppEnvironment,
    CachedUser,
    Identity,
    IssuedTokens,
    Scope,
    UserEnvironment,
    Workspace,
)


class KeyStore(Protocol):
    """Contract for OS-level secure secret storage."""

    def get(self, service: str, account: str) -> str | None:
        """Return the stored secret, or ``None`` when it does not exist.

        Raises
        ------
        KeyStoreError
            When the backing store is unreachable.
        """
        ...  # pragma: no cover

    def set(self, service: str, account: str, secret: str) -> None:
        """Persist *secret* under ``(service, account)``.

        Raises
        ------
        KeyStoreError
            When the backing store is unreachable or refuses the write.
        """
        ...  # pragma: no cover


class ConfigStore(Protocol):
    """Read side of the layered configuration used by the login flow."""

    def current_environment(self) -> str | None:
        ...  # pragma: no cover

    def get(self, environment: str, field: str) -> Any | None:
        ...  # pragma: no cover

    def app_environment(self, name: str) -> AppEnvironment | None:
        ...  # pragma: no cover

    def user_environment(self, name: str) -> UserEnvironment | None:
        ...  # pragma: no cover


class Vault(Protocol):
    """Encrypted credential cache."""

    def encrypt(self, plaintext: str) -> str:
        ...  # pragma: no cover

    def decrypt(self, ciphertext: str) -> str:
        """Raises :class:`~cfctl.exceptions.DecryptError` on failure."""
        ...  # pragma: no cover

    def add_app_token(self, environment: str, token: str) -> bool:
        ...  # pragma: no cover

    def cached_users(self, environment: str) -> list[CachedUser]:
        ...  # pragma: no cover

    def upsert_user(
        self,
        environment: str,
        user_id: str,
        encrypted_password: str,
        token: str,
    ) -> None:
        ...  # pragma: no cover


class IdentityGateway(Protocol):
    """Remote identity-service operations needed by the login flow.

    Implementations must map every transport or protocol failure to
    :class:`~cfctl.exceptions.RPCError`.  No retries.
    """

    def resolve_domain(self, name: str) -> str:
        """Return the domain id registered under *name*."""
        ...  # pragma: no cover

    def issue_token(
        self,
        user_id: str,
        password: str,
        domain_id: str,
    ) -> IssuedTokens:
        ...  # pragma: no cover

    def who_am_i(self, access_token: str) -> Identity:
        ...  # pragma: no cover

    def list_workspaces(self, access_token: str) -> list[Workspace]:
        ...  # pragma: no cover

    def grant_token(
        self,
        refresh_token: str,
        scope: Scope,
        domain_id: str,
        workspace_id: str = "",
    ) -> str:
        """Return a new access token for *scope*."""
        ...  # pragma: no cover


class LoginInteraction(Protocol):
    """Everything the login flow needs to ask of, or tell, the user.

    Every ``ask_*``/``choose_*`` method raises
    :class:`~cfctl.exceptions.UserCancelError` when the user quits.
    """

    def ask_token(self) -> str:
        """Masked prompt for a raw app token."""
        ...  # pragma: no cover

    def ask_credentials(self) -> tuple[str, str]:
        """Prompt for a new ``(user_id, password)`` pair."""
        ...  # pragma: no cover

    def ask_password(self, user_id: str) -> str:
        """Masked prompt for the password of a known user."""
        ...  # pragma: no cover

    def choose_user(self, users: Sequence[CachedUser]) -> CachedUser | None:
        """Pick a cached user; ``None`` means *add a new user*."""
        ...  # pragma: no cover

    def choose_scope(self) -> Scope:
        """Pick between :attr:`Scope.DOMAIN` and :attr:`Scope.WORKSPACE`."""
        ...  # pragma: no cover

    def choose_workspace(self, workspaces: Sequence[Workspace]) -> Workspace:
        ...  # pragma: no cover

    def info(self, message: str) -> None:
        ...  # pragma: no cover

    def warn(self, message: str, *, hint: str | None = None) -> None:
        ...  # pragma: no cover
