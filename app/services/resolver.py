"""Turn a scanned string plus the scanner's school into a stored person.

Order matters: the claimed school is checked before any lookup, and the
lookup itself is scoped to the scanner's school rather than the payload's.
"""
import logging
from typing import Optional, Protocol, Union

from app.models.identity import (
    ErrorKind,
    IdentityError,
    PersonRecord,
    PersonRef,
    ResolvedPerson,
)
from app.services.compact_codec import decode_compact
from app.services.envelope import decode_envelope

logger = logging.getLogger(__name__)


class PersonStore(Protocol):
    def find_person(self, ref: PersonRef) -> Optional[PersonRecord]:
        """Return the record matching id, type AND school_id of ``ref``."""
        ...


def classify(payload: str) -> Union[PersonRef, IdentityError]:
    """Decode either codec; the compact form is tried first."""
    result = decode_compact(payload)
    if not isinstance(result, IdentityError) or result.kind is not ErrorKind.MALFORMED_PAYLOAD:
        return result

    fallback = decode_envelope(payload)
    if isinstance(fallback, IdentityError):
        return IdentityError(ErrorKind.UNRECOGNIZED_PAYLOAD, "neither compact nor envelope", cause=fallback)
    return fallback


def resolve(payload: str, school_context: int, store: PersonStore) -> Union[ResolvedPerson, IdentityError]:
    claimed = classify(payload)
    if isinstance(claimed, IdentityError):
        logger.info("Scan rejected in school %s: %s", school_context, claimed)
        return claimed

    if claimed.school_id != school_context:
        logger.warning(
            "School mismatch: %s %s claims school %s, scanned in school %s",
            claimed.type.value, claimed.id, claimed.school_id, school_context,
        )
        return IdentityError(
            ErrorKind.SCHOOL_MISMATCH,
            f"code belongs to school {claimed.school_id}, scanner is in school {school_context}",
        )

    scoped = claimed.in_school(school_context)
    record = store.find_person(scoped)
    if record is not None and record.ref != scoped:
        logger.warning("Person store returned %s for lookup %s, discarding", record.ref, scoped)
        record = None
    if record is None:
        logger.info("No %s %s in school %s", claimed.type.value, claimed.id, school_context)
        return IdentityError(ErrorKind.PERSON_NOT_FOUND, f"{claimed.type.value} {claimed.id}")

    return ResolvedPerson(ref=record.ref, current_name=record.name, verified=record.verified)
