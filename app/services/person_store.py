"""SQLAlchemy-backed person store.

Every query that takes a ``PersonRef`` filters on both the id and the
school; the person type selects the table.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import insert, select, update

from app.models.identity import PersonRecord, PersonRef, PersonType
from app.models.people import TABLES, table_for
from app.services.envelope import IssuedCode
from app.services.qr_generator import to_data_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredCode:
    """The currently issued code of a person, as persisted."""

    envelope_json: str
    image_png: bytes

    @property
    def data_url(self) -> str:
        return to_data_url(self.image_png)


def _scoped(table, ref: PersonRef):
    return (table.c.id == ref.id) & (table.c.school_id == ref.school_id)


class SqlPersonStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def find_person(self, ref: PersonRef) -> Optional[PersonRecord]:
        table = table_for(ref.type)
        with self._session_factory() as db:
            row = db.execute(
                select(table.c.id, table.c.school_id, table.c.name, table.c.verified)
                .where(_scoped(table, ref))
            ).first()
        if row is None:
            return None
        return PersonRecord(
            ref=PersonRef(id=row.id, type=ref.type, school_id=row.school_id),
            name=row.name,
            verified=bool(row.verified),
        )

    def create_person(
        self,
        person_type: PersonType,
        school_id: int,
        name: str,
        verified: bool = False,
        parent_id: Optional[int] = None,
    ) -> PersonRef:
        table = table_for(person_type)
        values = {"school_id": school_id, "name": name, "verified": verified}
        if parent_id is not None:
            if person_type is not PersonType.CHILD:
                raise ValueError("only children have a parent")
            values["parent_id"] = parent_id
        with self._session_factory() as db:
            result = db.execute(insert(table).values(**values))
            db.commit()
            person_id = result.inserted_primary_key[0]
        ref = PersonRef(id=person_id, type=person_type, school_id=school_id)
        logger.info("Created %s %s in school %s", person_type.value, person_id, school_id)
        return ref

    def mark_verified(self, ref: PersonRef) -> bool:
        table = table_for(ref.type)
        with self._session_factory() as db:
            result = db.execute(update(table).where(_scoped(table, ref)).values(verified=True))
            db.commit()
        return result.rowcount > 0

    def list_people(self, school_id: int, person_type: Optional[PersonType] = None) -> List[PersonRecord]:
        types = [person_type] if person_type is not None else list(TABLES)
        records: List[PersonRecord] = []
        with self._session_factory() as db:
            for current in types:
                table = table_for(current)
                rows = db.execute(
                    select(table.c.id, table.c.name, table.c.verified)
                    .where(table.c.school_id == school_id)
                    .order_by(table.c.id.asc())
                ).all()
                for row in rows:
                    records.append(PersonRecord(
                        ref=PersonRef(id=row.id, type=current, school_id=school_id),
                        name=row.name,
                        verified=bool(row.verified),
                    ))
        return records

    def list_missing_codes(self, school_id: int) -> List[PersonRef]:
        """Verified people of ``school_id`` with no issued code yet."""
        refs: List[PersonRef] = []
        with self._session_factory() as db:
            for person_type, table in TABLES.items():
                rows = db.execute(
                    select(table.c.id)
                    .where(table.c.school_id == school_id)
                    .where(table.c.verified.is_(True))
                    .where(table.c.qr_code_data.is_(None))
                    .order_by(table.c.id.asc())
                ).all()
                refs.extend(PersonRef(id=row.id, type=person_type, school_id=school_id) for row in rows)
        return refs

    def get_issued(self, ref: PersonRef) -> Optional[StoredCode]:
        table = table_for(ref.type)
        with self._session_factory() as db:
            row = db.execute(
                select(table.c.qr_code, table.c.qr_code_data).where(_scoped(table, ref))
            ).first()
        if row is None or row.qr_code is None or row.qr_code_data is None:
            return None
        return StoredCode(envelope_json=row.qr_code_data, image_png=row.qr_code)

    def save_issued(self, ref: PersonRef, issued: IssuedCode) -> None:
        if issued.envelope.ref != ref:
            raise ValueError(f"issued code is for {issued.envelope.ref}, not {ref}")
        table = table_for(ref.type)
        with self._session_factory() as db:
            result = db.execute(
                update(table)
                .where(_scoped(table, ref))
                .values(
                    qr_token=issued.envelope.code,
                    qr_code=issued.image_png,
                    qr_code_data=issued.envelope_json,
                )
            )
            if result.rowcount == 0:
                db.rollback()
                raise LookupError(f"no {ref.type.value} {ref.id} in school {ref.school_id}")
            db.commit()

    def token_in_use(self, token: str) -> bool:
        with self._session_factory() as db:
            for table in TABLES.values():
                if db.execute(select(table.c.id).where(table.c.qr_token == token)).first() is not None:
                    return True
        return False
