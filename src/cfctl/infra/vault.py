"""Encrypted local credential cache.

Cached user passwords are encrypted with AES-256 in CFB mode under a
single per-machine key and sealed with an HMAC-SHA256 tag whose key is
derived from the same secret.  The key itself never touches the config
files: it lives in the OS key store (see
:mod:`cfctl.infra.keyring_store`) and is generated on first use.

Ciphertext layout, before URL-safe base64 encoding::

    IV (16 bytes) ‖ CFB ciphertext ‖ HMAC-SHA256 tag (32 bytes)

The tag covers IV and ciphertext and is checked before decrypting, so a
different key is always detected.

Losing or rotating the key silently invalidates every cached password;
callers treat :class:`~cfctl.exceptions.DecryptError` as a cue to
prompt again, never as fatal.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from cfctl.core.models import AppToken, CachedUser
from cfctl.core.protocols import KeyStore
from cfctl.exceptions import DecryptError, DecryptFailure, KeyStoreError
from cfctl.infra.config_store import (
    LayeredConfigStore,
    Tier,
    serialize_tokens,
    serialize_users,
)
from cfctl.settings import ConfigContext

logger = logging.getLogger(__name__)

KEY_SIZE: int = 32
IV_SIZE: int = 16
TAG_SIZE: int = 32

_MAC_KEY_INFO = b"cfctl-vault-mac"


class CredentialVault:
    """Encrypt secrets and maintain the cached tokens and users.

    Parameters
    ----------
    context:
        Supplies the key-store identity of the vault key.
    key_store:
        OS secure storage adapter.
    store:
        Configuration store the cached records are written through.
    """

    def __init__(
        self,
        context: ConfigContext,
        key_store: KeyStore,
        store: LayeredConfigStore,
    ) -> None:
        self._service = context.keyring_service
        self._account = context.keyring_account
        self._key_store = key_store
        self._store = store
        self._key: bytes | None = None
        self._mac_key: bytes | None = None

    # ------------------------------------------------------------------
    # Key management
    # ------------------------------------------------------------------

    def get_or_create_key(self) -> bytes:
        """Return the vault key, generating and persisting it when absent.

        Raises
        ------
        KeyStoreError
            When the OS key store is unreachable, or holds a value that
            is not a valid key.
        """
        if self._key is not None:
            return self._key

        stored = self._key_store.get(self._service, self._account)
        if stored:
            try:
                key = base64.b64decode(stored, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise KeyStoreError(
                    "The stored encryption key is not valid base64.",
                ) from exc
            if len(key) != KEY_SIZE:
                raise KeyStoreError(
                    f"The stored encryption key has {len(key)} bytes, expected {KEY_SIZE}.",
                )
        else:
            key = secrets.token_bytes(KEY_SIZE)
            # Persist before first use so nothing is ever encrypted under
            # a key that was not saved.
            self._key_store.set(
                self._service,
                self._account,
                base64.b64encode(key).decode("ascii"),
            )
            logger.info("Generated a new credential encryption key")

        self._key = key
        return key

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self.get_or_create_key()), CFB(iv))

    def _mac(self) -> hmac.HMAC:
        if self._mac_key is None:
            self._mac_key = HKDF(
                algorithm=hashes.SHA256(),
                length=KEY_SIZE,
                salt=None,
                info=_MAC_KEY_INFO,
            ).derive(self.get_or_create_key())
        return hmac.HMAC(self._mac_key, hashes.SHA256())

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str) -> str:
        """Encrypt *plaintext* under a fresh random IV and append its tag."""
        iv = secrets.token_bytes(IV_SIZE)
        encryptor = self._cipher(iv).encryptor()
        body = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        mac = self._mac()
        mac.update(iv + body)
        return base64.urlsafe_b64encode(iv + body + mac.finalize()).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """Recover the plaintext produced by :meth:`encrypt`.

        Raises
        ------
        DecryptError
            ``reason=MALFORMED`` when the text is not base64, is too short
            to hold an IV and a tag, or authenticates but is not UTF-8;
            ``reason=WRONG_KEY`` when the tag does not verify under the
            current key.
        """
        try:
            raw = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
        except (binascii.Error, ValueError) as exc:
            raise DecryptError(
                "Cached password is not valid base64.",
                reason=DecryptFailure.MALFORMED,
            ) from exc

        if len(raw) < IV_SIZE + TAG_SIZE:
            raise DecryptError(
                "Cached password is too short to contain an IV and a tag.",
                reason=DecryptFailure.MALFORMED,
            )

        sealed, tag = raw[:-TAG_SIZE], raw[-TAG_SIZE:]
        mac = self._mac()
        mac.update(sealed)
        try:
            mac.verify(tag)
        except InvalidSignature as exc:
            raise DecryptError(
                "Cached password could not be decrypted with the current key.",
                reason=DecryptFailure.WRONG_KEY,
                hint="The encryption key may have changed; enter the password again.",
            ) from exc

        iv, body = sealed[:IV_SIZE], sealed[IV_SIZE:]
        decryptor = self._cipher(iv).decryptor()
        plain = decryptor.update(body) + decryptor.finalize()
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptError(
                "Cached password is not valid UTF-8.",
                reason=DecryptFailure.MALFORMED,
            ) from exc

    # ------------------------------------------------------------------
    # Cached records
    # ------------------------------------------------------------------

    def add_app_token(self, environment: str, token: str) -> bool:
        """Append *token* to the environment's app tokens unless present.

        Returns
        -------
        bool
            ``True`` when the token was new and has been written.
        """
        record = self._store.app_environment(environment)
        tokens = list(record.tokens) if record is not None else []
        if any(t.token == token for t in tokens):
            logger.debug("App token already cached for %s", environment)
            return False
        tokens.append(AppToken(token=token))
        self._store.set(environment, "tokens", serialize_tokens(tokens), Tier.APP)
        return True

    def cached_users(self, environment: str) -> list[CachedUser]:
        record = self._store.user_environment(environment)
        return list(record.users) if record is not None else []

    def upsert_user(
        self,
        environment: str,
        user_id: str,
        encrypted_password: str,
        token: str,
    ) -> None:
        """Insert or replace the cached entry for *user_id*.

        The list keeps its order; repeat logins never grow it.
        """
        entry = CachedUser(
            user_id=user_id,
            encrypted_password=encrypted_password,
            token=token,
        )
        users = self.cached_users(environment)
        for index, existing in enumerate(users):
            if existing.user_id == user_id:
                users[index] = entry
                break
        else:
            users.append(entry)
        self._store.set(environment, "users", serialize_users(users), Tier.USER)
        logger.debug("Cached credentials for user %s in %s", user_id, environment)
