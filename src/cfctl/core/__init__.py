"""Core / service layer — login flow, token inspection and selection logic.

Rules
-----
* No ``print()`` calls.
* No filesystem, network or terminal I/O.
* No imports from ``cli`` or ``infra``; collaborators arrive as protocols.
"""

from cfctl.core.login_service import LoginService, LoginState
from cfctl.core.models import (
    AppEnvironment,
    CachedUser,
    EnvironmentKind,
    LoginResult,
    RoleType,
    Scope,
    UserEnvironment,
    Workspace,
)
from cfctl.core.protocols import (
    ConfigStore,
    IdentityGateway,
    KeyStore,
    LoginInteraction,
    Vault,
)
from cfctl.core.selector import ADD_NEW, KeyEvent, KeyKind, Selector, SelectorConfig

__all__: list[str] = [
    "ADD_NEW",
    "AppEnvironment",
    "CachedUser",
    "ConfigStore",
    "EnvironmentKind",
    "IdentityGateway",
    "KeyEvent",
    "KeyKind",
    "KeyStore",
    "LoginInteraction",
    "LoginResult",
    "LoginService",
    "LoginState",
    "RoleType",
    "Scope",
    "Selector",
    "SelectorConfig",
    "UserEnvironment",
    "Vault",
    "Workspace",
]
