import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.models.identity import PersonRef
from app.services.envelope import IssuedCode, encode_envelope
from app.services.person_store import SqlPersonStore
from app.services.tokens import TokenCollisionError, generate_unique_token

logger = logging.getLogger(__name__)


class PersonNotFoundError(LookupError):
    def __init__(self, ref: PersonRef):
        super().__init__(f"no {ref.type.value} {ref.id} in school {ref.school_id}")
        self.ref = ref


def issue_code(store: SqlPersonStore, ref: PersonRef, rng=None) -> IssuedCode:
    """Issue a fresh code for ``ref`` and persist it.

    The display name is read from the store at issuance time. A token taken
    by a concurrent issuance between the check and the write is replaced by a
    fresh one.
    """
    record = store.find_person(ref)
    if record is None:
        raise PersonNotFoundError(ref)

    settings = get_settings()
    for _ in range(settings.token_max_attempts):
        token = generate_unique_token(
            store.token_in_use,
            rng=rng,
            length=settings.token_length,
            max_attempts=settings.token_max_attempts,
        )
        issued = encode_envelope(record.ref, record.name, token=token)
        try:
            store.save_issued(record.ref, issued)
        except IntegrityError:
            logger.warning("Token %s was taken while issuing for %s, retrying", token, ref)
            continue
        logger.info("Issued code %s for %s %s in school %s", token, ref.type.value, ref.id, ref.school_id)
        return issued
    raise TokenCollisionError(f"token conflicts on every write for {ref}")


def regenerate_code(store: SqlPersonStore, ref: PersonRef, rng=None) -> IssuedCode:
    """Replace the issued code of ``ref``.

    Cards printed before regeneration still resolve.
    """
    issued = issue_code(store, ref, rng=rng)
    logger.info("Regenerated code for %s %s in school %s", ref.type.value, ref.id, ref.school_id)
    return issued


def issue_missing_codes(store: SqlPersonStore, school_id: int, rng=None) -> List[PersonRef]:
    """Issue codes for every verified person in ``school_id`` that has none."""
    issued = []
    for ref in store.list_missing_codes(school_id):
        issue_code(store, ref, rng=rng)
        issued.append(ref)
    return issued


def verify_and_issue(store: SqlPersonStore, ref: PersonRef, rng=None) -> Optional[IssuedCode]:
    """Mark ``ref`` verified; issue a code if it does not have one yet."""
    if not store.mark_verified(ref):
        raise PersonNotFoundError(ref)
    if store.get_issued(ref) is not None:
        return None
    return issue_code(store, ref, rng=rng)
