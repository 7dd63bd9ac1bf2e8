"""Tests for the ``cfctl doctor`` command (cli/doctor.py).

The keyring backend is mocked and config files live under ``tmp_path``.

Coverage:
* Individual check functions return correct tuples.
* Missing tier files warn, malformed ones fail.
* ``run_doctor`` exit codes with and without Rich.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from cfctl.cli import exit_codes
from cfctl.exceptions import DependencyMissingError
from cfctl.infra.config_store import LayeredConfigStore, Tier
from cfctl.settings import ConfigContext

from conftest import write_yaml

_BACKEND = "keyring.backends.SecretService.Keyring"


# ---------------------------------------------------------------------------
# Individual check functions
# ---------------------------------------------------------------------------

class TestPythonVersionCheck:
    def test_returns_tuple(self) -> None:
        from cfctl.cli.doctor import _python_version_check

        label, value, status = _python_version_check()
        assert label == "Python"
        assert isinstance(value, str)
        assert "OK" in status


class TestKeyringCheck:
    @patch("cfctl.cli.doctor.KeyringKeyStore.backend_name", return_value=_BACKEND)
    def test_usable_backend(self, _mock_backend: MagicMock) -> None:
        from cfctl.cli.doctor import _keyring_check

        label, value, status = _keyring_check()
        assert label == "keyring"
        assert value == _BACKEND
        assert "OK" in status

    @patch(
        "cfctl.cli.doctor.KeyringKeyStore.backend_name",
        return_value="keyring.backends.fail.Keyring",
    )
    def test_fail_backend(self, _mock_backend: MagicMock) -> None:
        from cfctl.cli.doctor import _keyring_check

        _label, _value, status = _keyring_check()
        assert "FAIL" in status

    @patch(
        "cfctl.cli.doctor.KeyringKeyStore.backend_name",
        side_effect=DependencyMissingError("keyring is not installed."),
    )
    def test_keyring_missing(self, _mock_backend: MagicMock) -> None:
        from cfctl.cli.doctor import _keyring_check

        _label, value, status = _keyring_check()
        assert "not installed" in value
        assert "FAIL" in status


class TestTierChecks:
    def test_missing_file_warns(self, store: LayeredConfigStore) -> None:
        from cfctl.cli.doctor import _tier_check

        _label, value, status = _tier_check(store, Tier.USER)
        assert "missing" in value
        assert "WARN" in status

    def test_malformed_file_fails(
        self,
        store: LayeredConfigStore,
        context: ConfigContext,
    ) -> None:
        from cfctl.cli.doctor import _tier_check

        write_yaml(context.app_config_path, "environments: [oops\n")
        _label, value, status = _tier_check(store, Tier.APP)
        assert "malformed" in value
        assert "FAIL" in status

    def test_current_environment(
        self,
        store: LayeredConfigStore,
        context: ConfigContext,
    ) -> None:
        from cfctl.cli.doctor import _current_environment_check

        assert "WARN" in _current_environment_check(store)[2]
        write_yaml(context.app_config_path, "environment: dev-acme-user\n")
        assert _current_environment_check(store)[1] == "dev-acme-user"


# ---------------------------------------------------------------------------
# run_doctor integration
# ---------------------------------------------------------------------------

class TestRunDoctor:
    @patch("cfctl.cli.doctor.KeyringKeyStore.backend_name", return_value=_BACKEND)
    def test_warnings_only_succeed(
        self,
        _mock_backend: MagicMock,
        context: ConfigContext,
    ) -> None:
        from cfctl.cli.doctor import run_doctor

        assert run_doctor(context) == exit_codes.SUCCESS

    @patch("cfctl.cli.doctor.KeyringKeyStore.backend_name", return_value=_BACKEND)
    def test_malformed_config_fails(
        self,
        _mock_backend: MagicMock,
        context: ConfigContext,
    ) -> None:
        from cfctl.cli.doctor import run_doctor

        write_yaml(context.user_config_path, "- not a mapping\n")
        assert run_doctor(context) == exit_codes.GENERAL_ERROR

    @patch("cfctl.cli.doctor.KeyringKeyStore.backend_name", return_value=_BACKEND)
    @patch.dict("sys.modules", {"rich": None, "rich.table": None, "rich.console": None})
    def test_plain_output_without_rich(
        self,
        _mock_backend: MagicMock,
        context: ConfigContext,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        from cfctl.cli.doctor import run_doctor

        code = run_doctor(context)

        captured = capsys.readouterr()
        assert code == exit_codes.SUCCESS
        assert "cfctl doctor" in captured.err
        assert "All checks passed." in captured.err
