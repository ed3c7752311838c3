"""
Document schemas for the proctoring portal.

Each stored model corresponds to a MongoDB collection (see ``COLLECTION``).
Field names on the wire and in the database are camelCase, matching what the
browser pages send; Python attributes are snake_case.
"""
from datetime import datetime, timezone
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["student", "teacher", "admin"]


def utc_timestamp(value: Optional[datetime] = None) -> str:
    """Render ``value`` (default: now) as a fixed-width UTC ISO-8601 string.

    Fixed width keeps lexical order equal to chronological order, which the
    ``timestamp`` sort on every collection relies on.
    """
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class UserProfile(Document):
    COLLECTION: ClassVar[str] = "users"

    username: Optional[str] = Field(None, description="Display name")
    email: str = Field("", description="Email address as reported by the identity provider")
    role: Role = Field("student", description="User role")
    approved: bool = Field(False, description="Whether the account may reach its dashboard")
    created_at: str = Field(default_factory=utc_timestamp, alias="createdAt")
    email_verified: bool = Field(False, alias="emailVerified")


class ViolationEvent(Document):
    COLLECTION: ClassVar[str] = "violations"

    student_id: str = Field(..., alias="studentId")
    violation_type: str = Field(..., alias="violationType")
    timestamp: str = Field(default_factory=utc_timestamp)
    evidence_url: Optional[str] = Field(None, alias="evidenceUrl")
    reviewed: bool = False


class ContactMessage(Document):
    COLLECTION: ClassVar[str] = "messages"

    name: str
    email: str
    phone: Optional[str] = None
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)
    read: bool = False


# ----------------------
# Request bodies
# ----------------------
# Required fields are optional here on purpose: absent and empty values are
# both reported as "Missing required fields" by the routes.

class ViolationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(None, alias="studentId")
    violation_type: Optional[str] = Field(None, alias="violationType")
    timestamp: Optional[datetime] = None
    evidence_url: Optional[str] = Field(None, alias="evidenceUrl")

    @field_validator("student_id", "violation_type", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        # Numeric student ids arrive unquoted from some proctoring clients.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def blank_timestamp_is_absent(cls, value):
        # Falsy values ("", 0, false) fall back to the receipt time.
        if not value or (isinstance(value, str) and not value.strip()):
            return None
        return value


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    role: Role = "student"


# ----------------------
# Responses
# ----------------------

class MessageResponse(BaseModel):
    message: str


class RegisterResponse(MessageResponse):
    role: Role
    approved: bool


class SessionRecord(BaseModel):
    uid: str
    email: str
    role: Role
    username: Optional[str] = None


class SessionResponse(BaseModel):
    destination: str
    role: Role
    session: SessionRecord
    token: str
