from sqlalchemy import Boolean, Column, DateTime, Integer, LargeBinary, MetaData, String, Table, Text
from sqlalchemy import func

from app.models.identity import PersonType

# Students and children live in separate tables; an id is unique only
# within (table, school_id).
metadata = MetaData()


def _identity_columns():
    return [
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("school_id", Integer, nullable=False, index=True),
        Column("name", String(200), nullable=False),
        Column("verified", Boolean, nullable=False, default=False),
        Column("qr_token", String(32), nullable=True, unique=True),
        Column("qr_code", LargeBinary, nullable=True),
        Column("qr_code_data", Text, nullable=True),
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
    ]


students = Table("students", metadata, *_identity_columns())

children = Table(
    "children",
    metadata,
    *_identity_columns(),
    Column("parent_id", Integer, nullable=True),
)

TABLES = {
    PersonType.STUDENT: students,
    PersonType.CHILD: children,
}


def table_for(person_type: PersonType) -> Table:
    return TABLES[person_type]


def create_tables(engine):
    """Create the person tables in the target database."""
    metadata.create_all(engine)


__all__ = ["students", "children", "metadata", "table_for", "create_tables"]
