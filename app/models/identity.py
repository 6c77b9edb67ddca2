"""Identity vocabulary shared by the codecs, the resolver and the store.

A person id is only meaningful together with its type and school, so every
API in this package takes a ``PersonRef`` instead of a bare integer.
"""
import enum
from dataclasses import dataclass
from typing import Optional


VERIFICATION_MARKER = "verified"


class PersonType(str, enum.Enum):
    STUDENT = "student"
    CHILD = "child"

    @classmethod
    def parse(cls, value: str) -> Optional["PersonType"]:
        """Exact, case-sensitive match against the wire literals."""
        for member in cls:
            if member.value == value:
                return member
        return None


def _check_identifier(field: str, value) -> None:
    # bool is an int subclass; True must not pass as id 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{field} must be non-negative, got {value}")


@dataclass(frozen=True)
class PersonRef:
    id: int
    type: PersonType
    school_id: int

    def __post_init__(self):
        if not isinstance(self.type, PersonType):
            parsed = PersonType.parse(self.type) if isinstance(self.type, str) else None
            if parsed is None:
                raise ValueError(f"unknown person type: {self.type!r}")
            object.__setattr__(self, "type", parsed)
        _check_identifier("id", self.id)
        _check_identifier("school_id", self.school_id)

    def in_school(self, school_id: int) -> "PersonRef":
        """Same person key, scoped to ``school_id``."""
        return PersonRef(id=self.id, type=self.type, school_id=school_id)


@dataclass(frozen=True)
class PersonRecord:
    """A person row as currently stored."""

    ref: PersonRef
    name: str
    verified: bool


@dataclass(frozen=True)
class ResolvedPerson:
    ref: PersonRef
    current_name: str
    verified: bool

    @property
    def id(self) -> int:
        return self.ref.id

    @property
    def type(self) -> PersonType:
        return self.ref.type

    @property
    def school_id(self) -> int:
        return self.ref.school_id

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "schoolId": self.school_id,
            "name": self.current_name,
            "verified": self.verified,
        }


class ErrorKind(str, enum.Enum):
    MALFORMED_PAYLOAD = "MalformedPayload"
    UNKNOWN_PERSON_TYPE = "UnknownPersonType"
    INVALID_IDENTIFIER = "InvalidIdentifier"
    UNVERIFIED_PAYLOAD = "UnverifiedPayload"
    MALFORMED_ENVELOPE = "MalformedEnvelope"
    INCOMPLETE_ENVELOPE = "IncompleteEnvelope"
    UNRECOGNIZED_PAYLOAD = "UnrecognizedPayload"
    SCHOOL_MISMATCH = "SchoolMismatch"
    PERSON_NOT_FOUND = "PersonNotFound"


CODEC_ERRORS = frozenset({
    ErrorKind.MALFORMED_PAYLOAD,
    ErrorKind.UNKNOWN_PERSON_TYPE,
    ErrorKind.INVALID_IDENTIFIER,
    ErrorKind.UNVERIFIED_PAYLOAD,
    ErrorKind.MALFORMED_ENVELOPE,
    ErrorKind.INCOMPLETE_ENVELOPE,
    ErrorKind.UNRECOGNIZED_PAYLOAD,
})


@dataclass(frozen=True)
class IdentityError:
    """A decode or resolution failure, returned as a value rather than raised."""

    kind: ErrorKind
    detail: str = ""
    cause: Optional["IdentityError"] = None

    @property
    def is_codec_error(self) -> bool:
        return self.kind in CODEC_ERRORS

    def __str__(self) -> str:
        text = self.kind.value
        if self.detail:
            text = f"{text}: {self.detail}"
        if self.cause is not None:
            text = f"{text} ({self.cause})"
        return text


__all__ = [
    "VERIFICATION_MARKER",
    "PersonType",
    "PersonRef",
    "PersonRecord",
    "ResolvedPerson",
    "ErrorKind",
    "IdentityError",
]
