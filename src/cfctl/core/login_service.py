"""Core login service — the login state machine.

Drives a single login attempt for the current environment:

* **App environments** (name ends with the app suffix): accept a raw
  token, warn when it is expired or under-privileged, cache it.
* **User environments**: acquire credentials (cached or prompted),
  exchange them for a token pair, settle the scope (domain or a
  workspace), obtain a scoped access token and cache the credentials.

Collaborators are injected as protocols; the service itself performs no
file, network or terminal I/O.  Every state transition is logged at
DEBUG and the current state is exposed as :attr:`LoginService.state`.

Guarantees
----------
* Nothing is persisted unless every step of the chain succeeds.
* Remote failures surface as the gateway's
  :class:`~cfctl.exceptions.RPCError`, unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from cfctl.core import token_validator
from cfctl.core.models import (
    CachedUser,
    EnvironmentKind,
    LoginResult,
    RoleType,
    Scope,
)
from cfctl.core.protocols import ConfigStore, IdentityGateway, LoginInteraction, Vault
from cfctl.exceptions import (
    CfctlError,
    DecryptError,
    FailureReason,
    InputError,
    LoginError,
    PasswordMismatchError,
    RPCError,
    ValidationError,
)
from cfctl.settings import ConfigContext

logger = logging.getLogger(__name__)


class LoginState(str, Enum):
    """States of one login attempt."""

    IDLE = "idle"
    BRANCH = "branch"
    APP_LOGIN = "app_login"
    CREDENTIAL_ACQUISITION = "credential_acquisition"
    TOKEN_ISSUANCE = "token_issuance"
    DOMAIN_ROLE_RESOLUTION = "domain_role_resolution"
    SCOPE_RESOLUTION = "scope_resolution"
    WORKSPACE_RESOLUTION = "workspace_resolution"
    TOKEN_GRANT = "token_grant"
    PERSIST_CREDENTIALS = "persist_credentials"
    DONE = "done"
    FAILED = "failed"


GatewayFactory = Callable[[str], IdentityGateway]
"""Builds a gateway for a resolved endpoint URL."""


class LoginService:
    """Run the login flow against the current environment.

    Parameters
    ----------
    context:
        Supplies the app-environment naming rule.
    store:
        Read access to the layered configuration.
    vault:
        Credential encryption and the cached token/user records.
    interaction:
        Prompts and selectors presented to the user.
    gateway_factory:
        Called with the resolved endpoint once a remote call is needed.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        context: ConfigContext,
        store: ConfigStore,
        vault: Vault,
        interaction: LoginInteraction,
        gateway_factory: GatewayFactory,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._context = context
        self._store = store
        self._vault = vault
        self._ui = interaction
        self._gateway_factory = gateway_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.state: LoginState = LoginState.IDLE
        self.failure_reason: FailureReason | None = None

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def _transition(self, state: LoginState) -> None:
        logger.debug("Login state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(
        self,
        reason: FailureReason,
        message: str,
        *,
        hint: str | None = None,
    ) -> LoginError:
        self.failure_reason = reason
        self._transition(LoginState.FAILED)
        return LoginError(message, reason=reason, hint=hint)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def login(self, url_override: str | None = None) -> LoginResult:
        """Log in to the current environment.

        Parameters
        ----------
        url_override:
            Endpoint to use instead of the configured one (user
            environments only).

        Raises
        ------
        LoginError
            For every terminal failure other than those below; its
            ``reason`` says which.
        PasswordMismatchError
            When a re-entered password differs from the cached one.
        RPCError
            When any remote call fails.
        UserCancelError
            When the user quits a prompt or selector.
        """
        self.state = LoginState.IDLE
        self.failure_reason = None
        try:
            result = self._run(url_override)
        except RPCError as exc:
            self.failure_reason = FailureReason.RPC_FAILURE
            self._transition(LoginState.FAILED)
            logger.debug("Remote call failed during %s", exc.operation or "login")
            raise
        except CfctlError:
            if self.state is not LoginState.FAILED:
                self._transition(LoginState.FAILED)
            raise
        self._transition(LoginState.DONE)
        return result

    def _run(self, url_override: str | None) -> LoginResult:
        environment = self._store.current_environment()
        if not environment:
            raise self._fail(
                FailureReason.NO_ENVIRONMENT,
                "No current environment is set.",
                hint="Initialise an environment before logging in.",
            )

        self._transition(LoginState.BRANCH)
        if self._context.is_app_environment(environment):
            return self._app_login(environment)
        return self._user_login(environment, url_override)

    # ------------------------------------------------------------------
    # App branch
    # ------------------------------------------------------------------

    def _app_login(self, environment: str) -> LoginResult:
        self._transition(LoginState.APP_LOGIN)
        token = self._ui.ask_token().strip()
        if not token:
            raise InputError("Token must not be empty.")

        try:
            token_validator.validate_app_token(token, self._clock())
        except ValidationError as exc:
            self._ui.warn(str(exc), hint=exc.hint)

        added = self._vault.add_app_token(environment, token)
        if added:
            self._ui.info(f"Token {token_validator.mask_token(token)} saved for {environment}.")
        else:
            self._ui.info(f"Token {token_validator.mask_token(token)} is already saved.")
        return LoginResult(
            environment=environment,
            kind=EnvironmentKind.APP,
            token_added=added,
        )

    # ------------------------------------------------------------------
    # User branch
    # ------------------------------------------------------------------

    def _resolve_endpoint(self, environment: str, url_override: str | None) -> str:
        endpoint = url_override or self._store.get(environment, "endpoint")
        if not endpoint or not isinstance(endpoint, str):
            raise self._fail(
                FailureReason.NO_ENDPOINT,
                f"No endpoint found for the current environment '{environment}'.",
                hint="Pass one with --url or configure an endpoint for the environment.",
            )

        proxy = bool(self._store.get(environment, "proxy"))
        if not proxy and "identity" not in endpoint.lower():
            raise self._fail(
                FailureReason.PROXY_REQUIRED,
                "Current endpoint is not configured for the identity service.",
                hint="Enable proxy mode or set the identity endpoint, then log in again.",
            )
        return endpoint

    def _user_login(self, environment: str, url_override: str | None) -> LoginResult:
        endpoint = self._resolve_endpoint(environment, url_override)

        self._transition(LoginState.CREDENTIAL_ACQUISITION)
        user_id, password = self._acquire_credentials(environment)

        self._transition(LoginState.TOKEN_ISSUANCE)
        segments = environment.split("-")
        if len(segments) < 3:
            raise self._fail(
                FailureReason.INVALID_ENVIRONMENT_NAME,
                f"Environment name '{environment}' does not contain a domain name.",
                hint="Environment names look like <prefix>-<domain>-<suffix>.",
            )

        gateway = self._gateway_factory(endpoint)
        try:
            domain_id = gateway.resolve_domain(segments[1])
            issued = gateway.issue_token(user_id, password, domain_id)

            self._transition(LoginState.DOMAIN_ROLE_RESOLUTION)
            identity = gateway.who_am_i(issued.access_token)

            self._transition(LoginState.SCOPE_RESOLUTION)
            scope = Scope.WORKSPACE
            if identity.role_type is RoleType.DOMAIN_ADMIN:
                scope = self._ui.choose_scope()

            workspace_id = ""
            if scope is not Scope.DOMAIN:
                self._transition(LoginState.WORKSPACE_RESOLUTION)
                workspaces = gateway.list_workspaces(issued.access_token)
                if not workspaces:
                    raise self._fail(
                        FailureReason.NO_ACCESSIBLE_WORKSPACE,
                        "There are no accessible workspaces.",
                        hint="Ask your administrator for workspace access.",
                    )
                workspace_id = self._ui.choose_workspace(workspaces).id
                scope = Scope.WORKSPACE

            self._transition(LoginState.TOKEN_GRANT)
            access_token = gateway.grant_token(
                issued.refresh_token,
                scope,
                identity.domain_id,
                workspace_id,
            )
        finally:
            close = getattr(gateway, "close", None)
            if callable(close):
                close()

        self._transition(LoginState.PERSIST_CREDENTIALS)
        encrypted = self._vault.encrypt(password)
        self._vault.upsert_user(environment, user_id, encrypted, access_token)

        self._ui.info(f"Successfully logged in as {user_id}.")
        return LoginResult(
            environment=environment,
            kind=EnvironmentKind.USER,
            user_id=user_id,
            scope=scope,
            workspace_id=workspace_id,
        )

    def _acquire_credentials(self, environment: str) -> tuple[str, str]:
        users = self._vault.cached_users(environment)
        if not users:
            return self._ui.ask_credentials()

        chosen = self._ui.choose_user(users)
        if chosen is None:
            return self._ui.ask_credentials()
        return chosen.user_id, self._password_for(chosen)

    def _password_for(self, user: CachedUser) -> str:
        """Reuse, confirm or re-prompt the password of a cached *user*."""
        expired = token_validator.is_token_expired(user.token, self._clock())

        try:
            stored = self._vault.decrypt(user.encrypted_password)
        except DecryptError as exc:
            logger.debug("Cached password for %s unusable (%s)", user.user_id, exc.reason.value)
            self._ui.warn(
                f"Could not decrypt the cached password for {user.user_id}.",
                hint=exc.hint or "Enter the password again.",
            )
            return self._ui.ask_password(user.user_id)

        if not expired:
            return stored

        password = self._ui.ask_password(user.user_id)
        if password != stored:
            self.failure_reason = FailureReason.PASSWORD_MISMATCH
            self._transition(LoginState.FAILED)
            raise PasswordMismatchError(
                "Password does not match the cached password.",
                hint="Try again, or choose 'Add new user' to replace the entry.",
            )
        return password
