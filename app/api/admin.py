import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Path, status

from app.api.deps import get_person_store, get_school_context, verify_admin_header
from app.models.identity import PersonRef, PersonType
from app.services.issuance import PersonNotFoundError, issue_code, regenerate_code, verify_and_issue
from app.services.person_store import SqlPersonStore
from app.services.tokens import TokenCollisionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _issued_response(ref: PersonRef, issued) -> dict:
    return {
        "id": ref.id,
        "type": ref.type.value,
        "schoolId": ref.school_id,
        "qrCode": issued.data_url if issued else None,
        "qrCodeData": issued.envelope_json if issued else None,
    }


def _issue_or_fail(action, store: SqlPersonStore, ref: PersonRef):
    try:
        return action(store, ref)
    except PersonNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except TokenCollisionError as e:
        logger.error("Could not issue code for %s: %s", ref, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not allocate a unique code, try again"
        )


@router.post("/people")
def create_person(
    person_type: PersonType = Form(..., alias="type"),
    name: str = Form(..., min_length=1),
    verified: bool = Form(False),
    parent_id: Optional[int] = Form(None, alias="parentId"),
    school_id: int = Depends(get_school_context),
    store: SqlPersonStore = Depends(get_person_store),
    admin: str = Depends(verify_admin_header),
):
    """Create a student or child; verified people get a code right away."""
    try:
        ref = store.create_person(person_type, school_id, name, verified=verified, parent_id=parent_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    issued = _issue_or_fail(issue_code, store, ref) if verified else None
    logger.info("Admin %s added %s %s (%s)", admin, ref.type.value, ref.id, name)
    return {"success": True, **_issued_response(ref, issued)}


@router.get("/people")
def list_people(
    person_type: Optional[PersonType] = None,
    school_id: int = Depends(get_school_context),
    store: SqlPersonStore = Depends(get_person_store),
    admin: str = Depends(verify_admin_header),
):
    records = store.list_people(school_id, person_type)
    people = [
        {"id": r.ref.id, "type": r.ref.type.value, "name": r.name, "verified": r.verified}
        for r in records
    ]
    return {"people": people}


@router.post("/people/{person_type}/{person_id}/verify")
def verify_person(
    person_type: PersonType,
    person_id: int = Path(..., ge=1),
    school_id: int = Depends(get_school_context),
    store: SqlPersonStore = Depends(get_person_store),
    admin: str = Depends(verify_admin_header),
):
    """Mark a person verified and issue a code if none exists yet."""
    ref = PersonRef(id=person_id, type=person_type, school_id=school_id)
    issued = _issue_or_fail(verify_and_issue, store, ref)
    return {"success": True, **_issued_response(ref, issued)}


@router.post("/qrcode/{person_type}/{person_id}/regenerate")
def regenerate_qr_code(
    person_type: PersonType,
    person_id: int = Path(..., ge=1),
    school_id: int = Depends(get_school_context),
    store: SqlPersonStore = Depends(get_person_store),
    admin: str = Depends(verify_admin_header),
):
    """Issue a new code. Cards printed earlier keep scanning."""
    ref = PersonRef(id=person_id, type=person_type, school_id=school_id)
    issued = _issue_or_fail(regenerate_code, store, ref)
    logger.info("Admin %s regenerated code for %s %s", admin, ref.type.value, ref.id)
    return _issued_response(ref, issued)
