"""Shared pytest fixtures and configuration for the cfctl test suite.

Guidelines
----------
* No network access in any test; the gateway runs on ``httpx.MockTransport``.
* No real OS keyring; :class:`FakeKeyStore` stands in for it.
* No real terminal; selectors are driven by scripted key events.
* Config files live under ``tmp_path`` only.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from cfctl.infra.config_store import LayeredConfigStore
from cfctl.infra.vault import CredentialVault
from cfctl.settings import ConfigContext

NOW: datetime = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeKeyStore:
    """In-memory :class:`~cfctl.core.protocols.KeyStore`."""

    def __init__(self) -> None:
        self.secrets: dict[tuple[str, str], str] = {}
        self.get_calls = 0
        self.set_calls = 0

    def get(self, service: str, account: str) -> str | None:
        self.get_calls += 1
        return self.secrets.get((service, account))

    def set(self, service: str, account: str, secret: str) -> None:
        self.set_calls += 1
        self.secrets[(service, account)] = secret


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def make_token(
    *,
    expires_in: float | None = 3600,
    role: Any = "DOMAIN_ADMIN",
    now: datetime = NOW,
    claims: dict[str, Any] | None = None,
) -> str:
    """Build an unsigned three-segment token with the given claims."""
    payload: dict[str, Any] = {}
    if expires_in is not None:
        payload["exp"] = int((now + timedelta(seconds=expires_in)).timestamp())
    if role is not None:
        payload["rol"] = role
    if claims:
        payload.update(claims)
    header = _b64url(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    return f"{header}.{body}.signature"


@pytest.fixture()
def context(tmp_path: Path) -> ConfigContext:
    return ConfigContext(home=tmp_path / ".cfctl")


@pytest.fixture()
def store(context: ConfigContext) -> LayeredConfigStore:
    return LayeredConfigStore(context)


@pytest.fixture()
def key_store() -> FakeKeyStore:
    return FakeKeyStore()


@pytest.fixture()
def vault(
    context: ConfigContext,
    key_store: FakeKeyStore,
    store: LayeredConfigStore,
) -> CredentialVault:
    return CredentialVault(context, key_store, store)


def write_yaml(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
