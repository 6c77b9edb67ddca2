"""Rich envelope codec.

The envelope is the JSON document persisted next to a person record when a
code is issued. It is never put into the scannable image; the image carries
only the compact payload.
"""
import json
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from app.models.identity import ErrorKind, IdentityError, PersonRef, PersonType
from app.services.compact_codec import encode_compact
from app.services.qr_generator import render_qr_png, to_data_url
from app.services.tokens import DEFAULT_TOKEN_LENGTH, generate_token


@dataclass(frozen=True)
class QREnvelope:
    id: int
    type: PersonType
    school_id: int
    name: str
    code: str
    timestamp: int

    @property
    def ref(self) -> PersonRef:
        return PersonRef(id=self.id, type=self.type, school_id=self.school_id)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "schoolId": self.school_id,
            "name": self.name,
            "code": self.code,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.as_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class IssuedCode:
    envelope: QREnvelope
    envelope_json: str
    compact_payload: str
    image_png: bytes

    @property
    def data_url(self) -> str:
        return to_data_url(self.image_png)


def _now_millis() -> int:
    return int(time.time() * 1000)


def encode_envelope(
    ref: PersonRef,
    name: str,
    rng=None,
    now: Optional[Callable[[], int]] = None,
    token_length: int = DEFAULT_TOKEN_LENGTH,
    token: Optional[str] = None,
) -> IssuedCode:
    """Issue a code for ``ref``.

    ``token`` may be supplied by a caller that already checked it against
    persisted tokens; otherwise one is drawn from ``rng``.
    """
    code = token if token is not None else generate_token(rng=rng, length=token_length)
    compact_payload = encode_compact(ref)
    image_png = render_qr_png(compact_payload)
    envelope = QREnvelope(
        id=ref.id,
        type=ref.type,
        school_id=ref.school_id,
        name=name,
        code=code,
        timestamp=(now or _now_millis)(),
    )
    return IssuedCode(
        envelope=envelope,
        envelope_json=envelope.to_json(),
        compact_payload=compact_payload,
        image_png=image_png,
    )


# Regeneration does not revoke earlier cards: their compact payload carries
# no token and keeps decoding and resolving against the current store.
regenerate_envelope = encode_envelope


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _incomplete(field: str, data: dict) -> IdentityError:
    if field not in data:
        return IdentityError(ErrorKind.INCOMPLETE_ENVELOPE, f"missing {field!r}")
    return IdentityError(ErrorKind.INCOMPLETE_ENVELOPE, f"bad {field!r}: {data[field]!r}")


def parse_envelope(text: str) -> Union[QREnvelope, IdentityError]:
    """Parse and validate a full envelope, keeping its descriptive fields."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError) as exc:
        return IdentityError(ErrorKind.MALFORMED_ENVELOPE, str(exc))

    if not isinstance(data, dict):
        return IdentityError(ErrorKind.INCOMPLETE_ENVELOPE, f"expected an object, got {type(data).__name__}")

    for field in ("id", "schoolId"):
        if not _is_int(data.get(field)) or data[field] < 0:
            return _incomplete(field, data)
    for field in ("type", "code", "name"):
        if not isinstance(data.get(field), str):
            return _incomplete(field, data)
    if "timestamp" in data and not _is_int(data["timestamp"]):
        return _incomplete("timestamp", data)

    person_type = PersonType.parse(data["type"])
    if person_type is None:
        return IdentityError(ErrorKind.UNKNOWN_PERSON_TYPE, repr(data["type"]))

    return QREnvelope(
        id=data["id"],
        type=person_type,
        school_id=data["schoolId"],
        name=data["name"],
        code=data["code"],
        timestamp=data.get("timestamp", 0),
    )


def decode_envelope(text: str) -> Union[PersonRef, IdentityError]:
    result = parse_envelope(text)
    if isinstance(result, IdentityError):
        return result
    return result.ref
