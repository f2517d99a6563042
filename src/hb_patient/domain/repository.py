"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_identifier.domain.models import PatientIdentifier
from src.hb_patient.domain.models import Patient, PatientDraft


class PatientRepositoryProtocol(Protocol):
    async def insert(
        self,
        db: AsyncSession,
        tenant_id: str,
        draft: PatientDraft,
        identifier: PatientIdentifier,
    ) -> Patient:
        """Raises UniqueConstraintViolationError when the identifier is taken."""
        ...

    async def get_by_patient_id(
        self,
        db: AsyncSession,
        tenant_id: str,
        patient_id: str,
    ) -> Patient | None: ...
