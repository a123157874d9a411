"""Google authentication for the Fitness API.

The sync core treats the credential as an opaque provider with a
``get_access_token()`` method; ``GoogleOAuth`` is the real implementation.
"""

from typing import Protocol, runtime_checkable

from .google_oauth import GoogleOAuth


@runtime_checkable
class CredentialProvider(Protocol):
    """Anything that can hand out a bearer token (or None when unauthorized)."""

    def get_access_token(self) -> str | None: ...


__all__ = ["CredentialProvider", "GoogleOAuth"]
