"""PatientRepository — raw SQL persistence implementation.

The UNIQUE (id_scope, patient_id) constraint from migration 001 is what
makes concurrent identifier allocation safe; a violation is translated to
UniqueConstraintViolationError so the allocator can retry.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.errors import UniqueConstraintViolationError
from src.hb_identifier.domain.models import PatientIdentifier
from src.hb_patient.domain.models import Patient, PatientDraft

UNIQUE_PATIENT_ID_CONSTRAINT = "uq_patients_scope_patient_id"

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, tenant_id, patient_id, id_degraded,
    first_name, last_name, date_of_birth, phone, email,
    created_at, updated_at
"""

_INSERT_PATIENT_SQL = text(f"""
    INSERT INTO patients (tenant_id, id_scope, patient_id, id_degraded,
        first_name, last_name, date_of_birth, phone, email)
    VALUES (:tenant_id, :id_scope, :patient_id, :id_degraded,
        :first_name, :last_name, :date_of_birth, :phone, :email)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_PATIENT_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM patients
    WHERE tenant_id = :tenant_id AND patient_id = :patient_id
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_patient(row: Any) -> Patient:
    return Patient(
        id=str(row.id),
        tenant_id=row.tenant_id,
        patient_id=row.patient_id,
        id_degraded=row.id_degraded,
        first_name=row.first_name,
        last_name=row.last_name,
        date_of_birth=row.date_of_birth,
        phone=row.phone,
        email=row.email,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _is_unique_violation(exc: IntegrityError) -> bool:
    return UNIQUE_PATIENT_ID_CONSTRAINT in str(exc.orig)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PatientRepository:
    """Concrete implementation of PatientRepositoryProtocol using raw SQL."""

    async def insert(
        self,
        db: AsyncSession,
        tenant_id: str,
        draft: PatientDraft,
        identifier: PatientIdentifier,
    ) -> Patient:
        # SAVEPOINT so a duplicate only rolls back this insert, not the session.
        try:
            async with db.begin_nested():
                result = await db.execute(
                    _INSERT_PATIENT_SQL,
                    {
                        "tenant_id": tenant_id,
                        "id_scope": identifier.scope.id_scope,
                        "patient_id": identifier.value,
                        "id_degraded": identifier.degraded,
                        "first_name": draft.first_name,
                        "last_name": draft.last_name,
                        "date_of_birth": draft.date_of_birth,
                        "phone": draft.phone,
                        "email": draft.email,
                    },
                )
                row = result.fetchone()
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise UniqueConstraintViolationError(identifier.value) from exc
            raise
        return _row_to_patient(row)

    async def get_by_patient_id(
        self, db: AsyncSession, tenant_id: str, patient_id: str
    ) -> Patient | None:
        result = await db.execute(
            _GET_PATIENT_SQL, {"tenant_id": tenant_id, "patient_id": patient_id}
        )
        row = result.fetchone()
        return _row_to_patient(row) if row else None
