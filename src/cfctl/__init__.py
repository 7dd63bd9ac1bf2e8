"""cfctl — command-line client core for a cloud control plane.

Covers login/session negotiation with the identity service, layered
configuration resolution, and an encrypted local credential cache.
"""

from cfctl.version import __version__

__all__: list[str] = ["__version__"]
