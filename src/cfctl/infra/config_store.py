"""Two-tier YAML configuration store.

Tiers, highest precedence first:

* :attr:`Tier.APP`  — ``<home>/config.yaml``; holds the current
  environment plus per-environment endpoint, proxy and app tokens.
* :attr:`Tier.USER` — ``<home>/cache/config.yaml``; holds per-environment
  endpoint, proxy and the cached users.

Both files share one layout::

    environment: dev-acme-app        # app tier only
    environments:
      dev-acme-app:
        endpoint: https://…/identity
        proxy: true
        tokens:
          - token: eyJ…

This module is the **only** place in the codebase that imports ``yaml``.
Parse failures are re-raised as :class:`~cfctl.exceptions.ConfigError`
naming the offending file.  Writes rewrite the whole file; there is no
locking and the last writer wins.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from cfctl.core.models import (
    AppEnvironment,
    AppToken,
    CachedUser,
    EnvironmentListing,
    UserEnvironment,
)
from cfctl.exceptions import ConfigError
from cfctl.settings import ConfigContext

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """A configuration storage tier, in precedence order."""

    APP = "app"
    USER = "user"


TIER_ORDER: tuple[Tier, ...] = (Tier.APP, Tier.USER)

_ALLOWED_FIELDS: dict[Tier, frozenset[str]] = {
    Tier.APP: frozenset({"endpoint", "proxy", "token", "tokens"}),
    Tier.USER: frozenset({"endpoint", "proxy", "users"}),
}

_FORBIDDEN_APP_KEYS: frozenset[str] = frozenset({"users", "password"})

_CURRENT_KEY = "environment"
_ENVIRONMENTS_KEY = "environments"


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) == 0
    return False


class LayeredConfigStore:
    """Resolve environment fields across the app and user-cache tiers.

    Parameters
    ----------
    context:
        Supplies the two tier file paths.

    Every read goes back to disk, so values written by a previous call
    (or another process) are always observed.
    """

    def __init__(self, context: ConfigContext) -> None:
        self._paths: dict[Tier, Path] = {
            Tier.APP: context.app_config_path,
            Tier.USER: context.user_config_path,
        }

    def path_of(self, tier: Tier) -> Path:
        return self._paths[tier]

    # ------------------------------------------------------------------
    # Raw file access
    # ------------------------------------------------------------------

    def load(self, tier: Tier) -> dict[str, Any]:
        """Parse and structurally validate one tier file.

        A missing file is an empty tier.

        Raises
        ------
        ConfigError
            If the file is not valid YAML, is not a mapping, or has a
            wrongly shaped ``environments`` section.
        """
        path = self._paths[tier]
        if not path.exists():
            return {}

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(
                f"Malformed configuration file {path}: {exc}",
                hint="Fix or remove the file and try again.",
            ) from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigError(
                f"Malformed configuration file {path}: top level must be a mapping.",
            )

        current = raw.get(_CURRENT_KEY)
        if current is not None and not isinstance(current, str):
            raise ConfigError(
                f"Malformed configuration file {path}: "
                f"'{_CURRENT_KEY}' must be a string.",
            )

        environments = raw.get(_ENVIRONMENTS_KEY)
        if environments is None:
            return raw
        if not isinstance(environments, dict):
            raise ConfigError(
                f"Malformed configuration file {path}: "
                f"'{_ENVIRONMENTS_KEY}' must be a mapping.",
            )
        for name, settings in environments.items():
            if settings is None:
                continue
            if not isinstance(settings, dict):
                raise ConfigError(
                    f"Malformed configuration file {path}: "
                    f"environment '{name}' must be a mapping.",
                )
            if tier is Tier.APP and _FORBIDDEN_APP_KEYS & settings.keys():
                raise ConfigError(
                    f"Malformed configuration file {path}: environment '{name}' "
                    "stores user credentials in the application tier.",
                    hint="Cached users belong in the cache/config.yaml file only.",
                )
        return raw

    def _write(self, tier: Tier, document: dict[str, Any]) -> None:
        path = self._paths[tier]
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                yaml.safe_dump(document, default_flow_style=False, sort_keys=False),
                encoding="utf-8",
            )
        except OSError as exc:
            raise ConfigError(f"Cannot write configuration file {path}: {exc}") from exc
        logger.debug("Rewrote %s tier at %s", tier.value, path)

    def _settings(self, tier: Tier, environment: str) -> dict[str, Any]:
        environments = self.load(tier).get(_ENVIRONMENTS_KEY) or {}
        return environments.get(environment) or {}

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get(self, environment: str, field: str) -> Any | None:
        """Return the first non-empty *field* value, app tier first."""
        for tier in TIER_ORDER:
            value = self._settings(tier, environment).get(field)
            if not _is_empty(value):
                logger.debug("Resolved %s.%s from %s tier", environment, field, tier.value)
                return value
        return None

    def set(self, environment: str, field: str, value: Any, tier: Tier) -> None:
        """Write *field* of *environment* into *tier* only.

        Unrelated keys in the file are preserved.

        Raises
        ------
        ConfigError
            If *field* is not valid for *tier*, or the file is malformed.
        """
        if field not in _ALLOWED_FIELDS[tier]:
            raise ConfigError(
                f"Field '{field}' cannot be stored in the {tier.value} tier.",
            )

        document = self.load(tier)
        environments = document.get(_ENVIRONMENTS_KEY)
        if environments is None:
            environments = {}
            document[_ENVIRONMENTS_KEY] = environments
        settings = environments.get(environment)
        if settings is None:
            settings = {}
            environments[environment] = settings
        settings[field] = value
        self._write(tier, document)

    def current_environment(self) -> str | None:
        """Name of the current environment, recorded in the app tier only."""
        current = self.load(Tier.APP).get(_CURRENT_KEY)
        return current or None

    def list(self) -> list[EnvironmentListing]:
        """All environment names across both tiers, sorted by name."""
        current = self.current_environment()
        seen: dict[str, list[str]] = {}
        for tier in TIER_ORDER:
            for name in self.load(tier).get(_ENVIRONMENTS_KEY) or {}:
                seen.setdefault(str(name), []).append(tier.value)
        return [
            EnvironmentListing(
                name=name,
                is_current=name == current,
                tiers=tuple(tiers),
            )
            for name, tiers in sorted(seen.items())
        ]

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def app_environment(self, name: str) -> AppEnvironment | None:
        """The app-tier record for *name*, or ``None`` when absent."""
        environments = self.load(Tier.APP).get(_ENVIRONMENTS_KEY) or {}
        if name not in environments:
            return None
        path = self._paths[Tier.APP]
        settings = environments.get(name) or {}
        return AppEnvironment(
            name=name,
            endpoint=self._parse_optional_str(settings, "endpoint", path),
            proxy=self._parse_bool(settings, "proxy", path),
            token=self._parse_optional_str(settings, "token", path),
            tokens=self._parse_tokens(settings.get("tokens"), path),
        )

    def user_environment(self, name: str) -> UserEnvironment | None:
        """The user-tier record for *name*, or ``None`` when absent."""
        environments = self.load(Tier.USER).get(_ENVIRONMENTS_KEY) or {}
        if name not in environments:
            return None
        path = self._paths[Tier.USER]
        settings = environments.get(name) or {}
        return UserEnvironment(
            name=name,
            endpoint=self._parse_optional_str(settings, "endpoint", path),
            proxy=self._parse_bool(settings, "proxy", path),
            users=self._parse_users(settings.get("users"), path),
        )

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_optional_str(settings: dict[str, Any], key: str, path: Path) -> str | None:
        value = settings.get(key)
        if value is None or isinstance(value, str):
            return value or None
        raise ConfigError(f"Malformed configuration file {path}: '{key}' must be a string.")

    @staticmethod
    def _parse_bool(settings: dict[str, Any], key: str, path: Path) -> bool:
        value = settings.get(key)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        raise ConfigError(f"Malformed configuration file {path}: '{key}' must be a boolean.")

    @staticmethod
    def _parse_tokens(raw: Any, path: Path) -> tuple[AppToken, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise ConfigError(f"Malformed configuration file {path}: 'tokens' must be a list.")
        tokens: list[AppToken] = []
        for entry in raw:
            if not isinstance(entry, dict) or not isinstance(entry.get("token"), str):
                raise ConfigError(
                    f"Malformed configuration file {path}: "
                    "each 'tokens' entry needs a string 'token'.",
                )
            tokens.append(AppToken(token=entry["token"]))
        return tuple(tokens)

    @staticmethod
    def _parse_users(raw: Any, path: Path) -> tuple[CachedUser, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise ConfigError(f"Malformed configuration file {path}: 'users' must be a list.")
        users: list[CachedUser] = []
        for entry in raw:
            if not isinstance(entry, dict) or not all(
                isinstance(entry.get(key), str) for key in ("userid", "password", "token")
            ):
                raise ConfigError(
                    f"Malformed configuration file {path}: each 'users' entry "
                    "needs string 'userid', 'password' and 'token' values.",
                )
            users.append(
                CachedUser(
                    user_id=entry["userid"],
                    encrypted_password=entry["password"],
                    token=entry["token"],
                ),
            )
        return tuple(users)


def serialize_tokens(tokens: tuple[AppToken, ...] | list[AppToken]) -> list[dict[str, str]]:
    """Render app tokens in their on-disk shape."""
    return [{"token": t.token} for t in tokens]


def serialize_users(users: tuple[CachedUser, ...] | list[CachedUser]) -> list[dict[str, str]]:
    """Render cached users in their on-disk shape."""
    return [
        {"userid": u.user_id, "password": u.encrypted_password, "token": u.token}
        for u in users
    ]
