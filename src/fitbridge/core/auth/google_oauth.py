"""Google OAuth 2.0 authentication for the Fitness API.

Handles the interactive OAuth flow on first use, then silently reuses and
refreshes the cached token.  The sync core only sees this object through
``get_access_token()`` and ``get_fitness_service()``.

Note: pickle is used for token storage; this is the standard Google
auth library pattern for OAuth refresh tokens (trusted local data only).
"""

from __future__ import annotations

import pickle
from pathlib import Path

from loguru import logger

from fitbridge.core.config import FITNESS_WRITE_SCOPES


class GoogleOAuth:
    """Interactive OAuth 2.0 flow with token persistence.

    Tokens are stored as pickle files and refreshed automatically.
    If no valid token exists, a browser window opens for user consent.

    Args:
        credentials_path: Path to the OAuth client-secrets JSON
            (downloaded from Google Cloud Console).
        token_path: Path to store/load the cached refresh token.
        scopes: OAuth scopes.  Defaults to the Fitness write scopes.
    """

    def __init__(
        self,
        credentials_path: str | Path,
        token_path: str | Path,
        scopes: list[str] | None = None,
    ):
        self.credentials_path = Path(credentials_path).expanduser()
        self.token_path = Path(token_path).expanduser()
        self.scopes = scopes or list(FITNESS_WRITE_SCOPES)
        self._credentials = None
        self._service = None

        self.token_path.parent.mkdir(parents=True, exist_ok=True)

    def authenticate(self):
        """Authenticate and return credentials.

        Loads cached token if available, refreshes if expired,
        or starts an interactive OAuth flow.

        Returns:
            ``google.oauth2.credentials.Credentials`` or ``None``.
        """
        from google.auth.transport.requests import Request
        from google_auth_oauthlib.flow import InstalledAppFlow

        creds = self._credentials

        if creds is None and self.token_path.exists():
            try:
                with open(self.token_path, "rb") as f:
                    creds = pickle.load(f)
                logger.debug(f"Loaded credentials from {self.token_path}")
            except Exception as e:
                logger.warning(f"Failed to load token: {e}")

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                logger.info("Refreshing expired credentials")
                try:
                    creds.refresh(Request())
                except Exception as e:
                    logger.error(f"Token refresh failed: {e}")
                    creds = None
            elif creds:
                creds = None

            if not creds:
                if not self.credentials_path.exists():
                    logger.error(
                        f"OAuth client secrets not found: {self.credentials_path}\n"
                        "Download from Google Cloud Console -> APIs & Services -> Credentials."
                    )
                    return None

                try:
                    flow = InstalledAppFlow.from_client_secrets_file(str(self.credentials_path), self.scopes)
                    logger.info("Starting OAuth flow -- complete authentication in browser")
                    creds = flow.run_local_server(port=0)
                except Exception as e:
                    logger.error(f"OAuth flow failed: {e}")
                    return None

            if creds:
                try:
                    with open(self.token_path, "wb") as f:
                        pickle.dump(creds, f)
                    logger.debug(f"Token saved to {self.token_path}")
                except Exception as e:
                    logger.warning(f"Failed to save token: {e}")

        self._credentials = creds
        return creds

    def get_access_token(self) -> str | None:
        """Return a bearer token, refreshing the cached credential first if needed."""
        creds = self.authenticate()
        if not creds:
            return None
        return getattr(creds, "token", None) or None

    def get_fitness_service(self):
        """Return a Google Fitness API v1 service, or ``None`` when not authorized."""
        if self._service is not None:
            return self._service

        from googleapiclient.discovery import build

        creds = self.authenticate()
        if not creds:
            return None

        self._service = build("fitness", "v1", credentials=creds, cache_discovery=False)
        return self._service
