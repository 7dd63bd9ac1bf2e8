"""HTTP/JSON implementation of :class:`~cfctl.core.protocols.IdentityGateway`.

Every call is a ``POST`` of a JSON body to ``<endpoint><path>``; calls
made on behalf of a signed-in user carry the access token as a bearer
``Authorization`` header.

This module is the **only** place in the codebase that imports
``httpx``.  Transport failures, non-2xx responses and responses missing
the expected fields are all re-raised as
:class:`~cfctl.exceptions.RPCError` naming the failed operation.  There
are no retries.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from cfctl.core.models import Identity, IssuedTokens, RoleType, Scope, Workspace
from cfctl.exceptions import RPCError

logger = logging.getLogger(__name__)

GRANT_TIMEOUT_SECONDS: int = 86400

_ROLE_CODES: dict[int, RoleType] = {
    1: RoleType.DOMAIN_ADMIN,
    2: RoleType.WORKSPACE_OWNER,
    3: RoleType.WORKSPACE_MEMBER,
}

_GRPC_SCHEMES: tuple[str, ...] = ("grpc://", "grpc+ssl://")


def _parse_role(value: Any) -> RoleType | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return _ROLE_CODES.get(value)
    return RoleType.parse(value)


class HttpIdentityGateway:
    """Talk to the identity service over HTTP.

    Parameters
    ----------
    endpoint:
        Base URL of the identity service, e.g.
        ``https://console-api.example.com/identity``.
    client:
        Optional pre-built :class:`httpx.Client`; tests inject one backed
        by :class:`httpx.MockTransport`.

    Raises
    ------
    RPCError
        If *endpoint* is not an ``http(s)`` URL.
    """

    def __init__(self, endpoint: str, client: httpx.Client | None = None) -> None:
        lowered = endpoint.lower()
        if lowered.startswith(_GRPC_SCHEMES):
            raise RPCError(
                f"Unsupported endpoint scheme: {endpoint}",
                operation="connect",
                hint="Configure the identity service's HTTP(S) endpoint instead of a gRPC one.",
            )
        if not lowered.startswith(("http://", "https://")):
            raise RPCError(
                f"Invalid endpoint format: {endpoint}",
                operation="connect",
                hint="Expected a URL such as https://console-api.example.com/identity",
            )
        self._base = endpoint.rstrip("/")
        self._client = client if client is not None else httpx.Client(timeout=None)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpIdentityGateway:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _call(
        self,
        operation: str,
        path: str,
        body: dict[str, Any],
        *,
        token: str | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        url = f"{self._base}{path}"
        logger.debug("POST %s (%s)", url, operation)

        try:
            response = self._client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise RPCError(
                f"Failed to {operation}: {exc}",
                operation=operation,
                hint="Check the endpoint and your network connection.",
            ) from exc

        if response.is_error:
            raise RPCError(
                f"Failed to {operation}: {self._error_message(response)}",
                operation=operation,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise RPCError(
                f"Failed to {operation}: response is not JSON.",
                operation=operation,
            ) from exc
        if not isinstance(payload, dict):
            raise RPCError(
                f"Failed to {operation}: unexpected response shape.",
                operation=operation,
            )
        return payload

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            for key in ("detail", "message"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
                if isinstance(value, dict) and isinstance(value.get("message"), str):
                    return value["message"]
        return f"HTTP {response.status_code}"

    @staticmethod
    def _require_str(payload: dict[str, Any], key: str, operation: str) -> str:
        value = payload.get(key)
        if not isinstance(value, str) or not value:
            raise RPCError(
                f"Failed to {operation}: '{key}' missing from response.",
                operation=operation,
            )
        return value

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def resolve_domain(self, name: str) -> str:
        operation = "resolve domain"
        payload = self._call(operation, "/domain/get-auth-info", {"name": name})
        return self._require_str(payload, "domain_id", operation)

    def issue_token(self, user_id: str, password: str, domain_id: str) -> IssuedTokens:
        operation = "issue token"
        payload = self._call(
            operation,
            "/token/issue",
            {
                "credentials": {"user_id": user_id, "password": password},
                "auth_type": "LOCAL",
                "timeout": 0,
                "verify_code": "",
                "domain_id": domain_id,
            },
        )
        return IssuedTokens(
            access_token=self._require_str(payload, "access_token", operation),
            refresh_token=self._require_str(payload, "refresh_token", operation),
        )

    def who_am_i(self, access_token: str) -> Identity:
        operation = "fetch user profile"
        payload = self._call(operation, "/user-profile/get", {}, token=access_token)
        role = _parse_role(payload.get("role_type"))
        if role is None:
            raise RPCError(
                f"Failed to {operation}: unknown role_type {payload.get('role_type')!r}.",
                operation=operation,
            )
        return Identity(
            domain_id=self._require_str(payload, "domain_id", operation),
            role_type=role,
        )

    def list_workspaces(self, access_token: str) -> list[Workspace]:
        operation = "list workspaces"
        payload = self._call(
            operation,
            "/user-profile/get-workspaces",
            {},
            token=access_token,
        )
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise RPCError(
                f"Failed to {operation}: 'results' is not a list.",
                operation=operation,
            )
        workspaces: list[Workspace] = []
        for entry in results:
            if not isinstance(entry, dict):
                continue
            workspace_id = entry.get("workspace_id")
            if not isinstance(workspace_id, str) or not workspace_id:
                continue
            workspaces.append(
                Workspace(id=workspace_id, name=str(entry.get("name") or workspace_id)),
            )
        return workspaces

    def grant_token(
        self,
        refresh_token: str,
        scope: Scope,
        domain_id: str,
        workspace_id: str = "",
    ) -> str:
        operation = "grant token"
        body: dict[str, Any] = {
            "grant_type": "REFRESH_TOKEN",
            "scope": scope.value,
            "token": refresh_token,
            "timeout": GRANT_TIMEOUT_SECONDS,
            "domain_id": domain_id,
        }
        if workspace_id:
            body["workspace_id"] = workspace_id
        payload = self._call(operation, "/token/grant", body)
        return self._require_str(payload, "access_token", operation)
