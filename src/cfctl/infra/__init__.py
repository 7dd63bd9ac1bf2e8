"""Infrastructure layer — config files, OS key store and the identity service.

This layer wraps all interaction with PyYAML, keyring, cryptography and
httpx.  Every raw third-party exception must be caught here and
re-raised as a :class:`~cfctl.exceptions.CfctlError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from cfctl.infra.config_store import LayeredConfigStore, Tier
from cfctl.infra.identity_gateway import HttpIdentityGateway
from cfctl.infra.keyring_store import KeyringKeyStore
from cfctl.infra.vault import CredentialVault

__all__: list[str] = [
    "CredentialVault",
    "HttpIdentityGateway",
    "KeyringKeyStore",
    "LayeredConfigStore",
    "Tier",
]
