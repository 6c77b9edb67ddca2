import logging

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, Field

from app.api.deps import get_person_store, get_school_context, verify_admin_header
from app.models.identity import ErrorKind, IdentityError, PersonRef, PersonType
from app.services.person_store import SqlPersonStore
from app.services.resolver import resolve

logger = logging.getLogger(__name__)

router = APIRouter()


class ScanRequest(BaseModel):
    qr_data: str = Field(..., alias="qrData", min_length=1)


_STATUS_BY_KIND = {
    ErrorKind.SCHOOL_MISMATCH: status.HTTP_403_FORBIDDEN,
    ErrorKind.PERSON_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def _raise_for(error: IdentityError):
    raise HTTPException(
        status_code=_STATUS_BY_KIND.get(error.kind, status.HTTP_400_BAD_REQUEST),
        detail={"error": error.kind.value, "message": str(error)},
    )


@router.get('/health')
async def health():
    return {"status": "ok"}


@router.post('/api/scan-student-qr')
def scan_student_qr(
    request: ScanRequest,
    school_id: int = Depends(get_school_context),
    store: SqlPersonStore = Depends(get_person_store),
    user: str = Depends(verify_admin_header),
):
    """Resolve a scanned code to a person of the caller's school."""
    result = resolve(request.qr_data, school_id, store)
    if isinstance(result, IdentityError):
        _raise_for(result)
    logger.info("Scan by %s resolved to %s %s in school %s", user, result.type.value, result.id, school_id)
    return result.as_dict()


@router.get('/api/qrcode/{person_type}/{person_id}')
def get_qr_code(
    person_type: PersonType,
    person_id: int = Path(..., ge=1),
    school_id: int = Depends(get_school_context),
    store: SqlPersonStore = Depends(get_person_store),
    user: str = Depends(verify_admin_header),
):
    """Currently issued code of a person in the caller's school."""
    ref = PersonRef(id=person_id, type=person_type, school_id=school_id)
    stored = store.get_issued(ref)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="QR code not found"
        )
    return {"qrCode": stored.data_url, "qrCodeData": stored.envelope_json}
