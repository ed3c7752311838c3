"""
identity.py
-----------
Adapter over Firebase Authentication, the external identity provider.

The backend never sees passwords: clients sign in with the Firebase web SDK
and hand the resulting ID token to the API. This module verifies those tokens,
terminates sessions by revoking refresh tokens, and creates accounts for the
provisioning CLI.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError

from errors import AuthenticationError, IdentityUnavailableError

LOGGER = logging.getLogger("portal.identity")

FIREBASE_APP_NAME = "proctoring-portal"
GOOGLE_PROVIDER = "google.com"


@dataclass(frozen=True)
class Identity:
    """An authenticated caller as vouched for by the identity provider."""

    uid: str
    email: str
    email_verified: bool = False
    display_name: Optional[str] = None
    sign_in_provider: Optional[str] = None

    @property
    def is_google(self) -> bool:
        return self.sign_in_provider == GOOGLE_PROVIDER


def load_credential(service_account: Optional[str]) -> credentials.Certificate:
    """Build a service-account credential from a JSON blob or a file path."""
    if not service_account:
        raise ValueError(
            "FIREBASE_SERVICE_ACCOUNT env var is missing and serviceAccountKey.json was not found locally."
        )
    text = service_account.strip()
    if text.startswith("{"):
        return credentials.Certificate(json.loads(text))
    return credentials.Certificate(str(Path(text)))


class IdentityProvider:
    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    @classmethod
    def from_service_account(cls, service_account: Optional[str]) -> "IdentityProvider":
        """Initialise the Firebase app, or return a degraded provider on failure."""
        try:
            return cls(firebase_admin.get_app(FIREBASE_APP_NAME))
        except ValueError:
            pass
        try:
            cred = load_credential(service_account)
            app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
        except (ValueError, OSError) as exc:
            LOGGER.error("Firebase init error: %s", exc)
            return cls(None)
        LOGGER.info("Firebase Admin initialized for project %s", app.project_id)
        return cls(app)

    @property
    def available(self) -> bool:
        return self._app is not None

    def _require_app(self) -> firebase_admin.App:
        if self._app is None:
            raise IdentityUnavailableError()
        return self._app

    def verify(self, id_token: str) -> Identity:
        app = self._require_app()
        try:
            claims = auth.verify_id_token(id_token, app=app, check_revoked=True)
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as exc:
            raise AuthenticationError("Invalid token") from exc
        except (auth.CertificateFetchError, FirebaseError) as exc:
            LOGGER.exception("ID token verification failed")
            raise IdentityUnavailableError() from exc
        return Identity(
            uid=claims["uid"],
            email=claims.get("email", ""),
            email_verified=bool(claims.get("email_verified", False)),
            display_name=claims.get("name"),
            sign_in_provider=claims.get("firebase", {}).get("sign_in_provider"),
        )

    def sign_out(self, uid: str) -> None:
        """Revoke every refresh token of ``uid`` so the client must sign in again."""
        app = self._require_app()
        try:
            auth.revoke_refresh_tokens(uid, app=app)
        except FirebaseError as exc:
            LOGGER.error("Could not revoke session for %s: %s", uid, exc)
            return
        LOGGER.info("Session terminated", extra={"uid": uid, "component": "identity"})

    def recreate_user(self, uid: str, email: str, password: str, display_name: str) -> None:
        """Replace any account registered under ``email`` with one using ``uid``."""
        app = self._require_app()
        try:
            existing = auth.get_user_by_email(email, app=app)
        except auth.UserNotFoundError:
            existing = None
        if existing is not None:
            LOGGER.info("User %s exists with UID %s; deleting to enforce new UID", email, existing.uid)
            auth.delete_user(existing.uid, app=app)
        auth.create_user(
            uid=uid,
            email=email,
            password=password,
            display_name=display_name,
            email_verified=True,
            app=app,
        )
