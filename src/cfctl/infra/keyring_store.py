"""OS secure-storage backed implementation of :class:`~cfctl.core.protocols.KeyStore`.

This module is the **only** place in the codebase that imports
``keyring``.  Backend failures are re-raised as
:class:`~cfctl.exceptions.KeyStoreError`.
"""

from __future__ import annotations

import logging
from typing import Any

from cfctl.exceptions import DependencyMissingError, KeyStoreError

logger = logging.getLogger(__name__)


def _import_keyring() -> Any:
    """Import keyring lazily so ``--help`` works without a backend."""
    try:
        import keyring
        import keyring.errors
    except ModuleNotFoundError as exc:
        raise DependencyMissingError(
            "keyring is not installed. Install with: pip install keyring",
        ) from exc
    return keyring


class KeyringKeyStore:
    """Concrete :class:`KeyStore` backed by the ``keyring`` package.

    Satisfies the protocol structurally — no explicit inheritance.
    """

    def get(self, service: str, account: str) -> str | None:
        keyring = _import_keyring()
        try:
            return keyring.get_password(service, account)
        except keyring.errors.KeyringError as exc:
            raise KeyStoreError(
                f"Failed to read '{account}' from the OS key store: {exc}",
                hint="Make sure a keyring backend is available and unlocked.",
            ) from exc

    def set(self, service: str, account: str, secret: str) -> None:
        keyring = _import_keyring()
        try:
            keyring.set_password(service, account, secret)
        except keyring.errors.KeyringError as exc:
            raise KeyStoreError(
                f"Failed to store '{account}' in the OS key store: {exc}",
                hint="Make sure a keyring backend is available and unlocked.",
            ) from exc
        logger.debug("Stored secret %s/%s in the OS key store", service, account)

    @staticmethod
    def backend_name() -> str:
        """Human-readable name of the active keyring backend."""
        keyring = _import_keyring()
        backend = keyring.get_keyring()
        return f"{type(backend).__module__}.{type(backend).__name__}"
