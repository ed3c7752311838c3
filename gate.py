"""
gate.py
-------
Post-login authorization: decides whether an authenticated identity may reach
a dashboard, and which one, from the state of its profile.

Emails in the privileged set are admitted as ``admin`` without any stored
profile and without an approval check. Keep that set small; anyone who can
sign in with one of those addresses gets the admin pages.
"""
from dataclasses import dataclass
from typing import Iterable

from errors import PendingApprovalError, ProfileNotFoundError, UnknownRoleError, ValidationError
from identity import Identity
from schemas import SessionRecord, UserProfile, utc_timestamp

ADMIN_DESTINATION = "admin.html"
DESTINATIONS = {
    "teacher": "./profDashboard/professorDashboard.html",
    "student": "./studDashboard/studentDashboard.html",
}
SELF_SERVICE_ROLES = ("student", "teacher")


@dataclass(frozen=True)
class Decision:
    destination: str
    session: SessionRecord


class AuthorizationGate:
    def __init__(self, store, privileged_emails: Iterable[str] = ()):
        self._store = store
        self._privileged = frozenset(e.strip().lower() for e in privileged_emails if e.strip())

    def is_privileged(self, email: str) -> bool:
        return bool(email) and email.strip().lower() in self._privileged

    def resolve(self, identity: Identity) -> Decision:
        if self.is_privileged(identity.email):
            session = SessionRecord(uid=identity.uid, email=identity.email, role="admin")
            return Decision(destination=ADMIN_DESTINATION, session=session)

        profile = self._store.get_profile(identity.uid)
        if not profile:
            raise ProfileNotFoundError()

        if not profile.get("approved", False):
            raise PendingApprovalError()

        role = profile.get("role")
        if role not in DESTINATIONS:
            raise UnknownRoleError()

        session = SessionRecord(
            uid=identity.uid,
            email=identity.email,
            role=role,
            username=profile.get("username"),
        )
        return Decision(destination=DESTINATIONS[role], session=session)


def new_profile(identity: Identity, username: str, role: str) -> UserProfile:
    """Profile for a self-registered account; teachers wait for approval."""
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("Cannot self-register as admin")
    return UserProfile(
        username=username,
        email=identity.email,
        role=role,
        approved=role != "teacher",
        created_at=utc_timestamp(),
        email_verified=False,
    )


def google_profile(identity: Identity) -> UserProfile:
    """Default profile for a first Google sign-in: an approved student."""
    return UserProfile(
        username=identity.display_name,
        email=identity.email,
        role="student",
        approved=True,
        created_at=utc_timestamp(),
        email_verified=True,
    )
