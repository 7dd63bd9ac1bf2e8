"""Tests for domain models (core/models.py).

Covers role parsing, immutability and the tier-specific environment
records.
"""

from __future__ import annotations

import dataclasses

import pytest

from cfctl.core.models import (
    AppEnvironment,
    AppToken,
    CachedUser,
    EnvironmentKind,
    LoginResult,
    RoleType,
    Scope,
    UserEnvironment,
)


# ---------------------------------------------------------------------------
# RoleType
# ---------------------------------------------------------------------------

class TestRoleType:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("DOMAIN_ADMIN", RoleType.DOMAIN_ADMIN),
            ("workspace_owner", RoleType.WORKSPACE_OWNER),
            ("Workspace_Member", RoleType.WORKSPACE_MEMBER),
            ("USER", RoleType.USER),
        ],
    )
    def test_parse_known(self, raw: str, expected: RoleType) -> None:
        assert RoleType.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["SUPERUSER", "", None, 3])
    def test_parse_unknown_is_none(self, raw: object) -> None:
        assert RoleType.parse(raw) is None

    def test_is_string_valued(self) -> None:
        assert RoleType.DOMAIN_ADMIN == "DOMAIN_ADMIN"
        assert Scope.WORKSPACE.value == "WORKSPACE"


# ---------------------------------------------------------------------------
# Environment records
# ---------------------------------------------------------------------------

class TestEnvironments:
    def test_app_defaults(self) -> None:
        env = AppEnvironment("dev-acme-app")
        assert env.endpoint is None
        assert env.proxy is False
        assert env.token is None
        assert env.tokens == ()

    def test_user_defaults(self) -> None:
        env = UserEnvironment("dev-acme-user")
        assert env.users == ()

    def test_app_record_has_no_users(self) -> None:
        names = {f.name for f in dataclasses.fields(AppEnvironment)}
        assert "users" not in names

    def test_equality_by_value(self) -> None:
        a = AppEnvironment("e", tokens=(AppToken("t1"),))
        b = AppEnvironment("e", tokens=(AppToken("t1"),))
        assert a == b

    def test_frozen(self) -> None:
        user = CachedUser("alice", "ENC", "TOK")
        with pytest.raises(dataclasses.FrozenInstanceError):
            user.token = "other"  # type: ignore[misc]


class TestLoginResult:
    def test_defaults(self) -> None:
        result = LoginResult("dev-acme-app", EnvironmentKind.APP)
        assert result.user_id is None
        assert result.scope is None
        assert result.workspace_id == ""
        assert result.token_added is False
