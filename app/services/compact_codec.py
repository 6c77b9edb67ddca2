"""Compact linking codec: ``<type>:<id>:<schoolId>:verified``.

This is the string printed into ID-card and test QR images. Field order and
the single-colon delimiter are fixed.
"""
import re
from typing import Union

from app.models.identity import (
    VERIFICATION_MARKER,
    ErrorKind,
    IdentityError,
    PersonRef,
    PersonType,
)

SEPARATOR = ":"
SEGMENT_COUNT = 4

_DIGITS = re.compile(r"[0-9]+")


def encode_compact(ref: PersonRef) -> str:
    if ref.id <= 0 or ref.school_id <= 0:
        raise ValueError(f"cannot encode {ref!r}: id and school_id must be positive")
    return SEPARATOR.join((ref.type.value, str(ref.id), str(ref.school_id), VERIFICATION_MARKER))


def _parse_identifier(segment: str):
    # int() would accept " 42", "+42" and non-ASCII digits
    if _DIGITS.fullmatch(segment) is None:
        return None
    return int(segment)


def decode_compact(payload: str) -> Union[PersonRef, IdentityError]:
    parts = payload.split(SEPARATOR)

    if len(parts) < SEGMENT_COUNT:
        return IdentityError(ErrorKind.MALFORMED_PAYLOAD, f"expected {SEGMENT_COUNT} segments, got {len(parts)}")
    if len(parts) > SEGMENT_COUNT:
        # "student:4:2:8:verified" - the extra colon is inside an identifier
        if PersonType.parse(parts[0]) is not None and parts[-1] == VERIFICATION_MARKER:
            return IdentityError(ErrorKind.INVALID_IDENTIFIER, "identifier segment contains a separator")
        return IdentityError(ErrorKind.MALFORMED_PAYLOAD, f"expected {SEGMENT_COUNT} segments, got {len(parts)}")

    type_segment, id_segment, school_segment, marker = parts

    person_type = PersonType.parse(type_segment)
    if person_type is None:
        return IdentityError(ErrorKind.UNKNOWN_PERSON_TYPE, repr(type_segment))

    person_id = _parse_identifier(id_segment)
    if person_id is None:
        return IdentityError(ErrorKind.INVALID_IDENTIFIER, f"id {id_segment!r}")
    school_id = _parse_identifier(school_segment)
    if school_id is None:
        return IdentityError(ErrorKind.INVALID_IDENTIFIER, f"schoolId {school_segment!r}")

    if marker != VERIFICATION_MARKER:
        return IdentityError(ErrorKind.UNVERIFIED_PAYLOAD, f"marker {marker!r}")

    return PersonRef(id=person_id, type=person_type, school_id=school_id)
