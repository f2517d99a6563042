"""PatientService — registers patients under allocated identifiers.

Unlike the read-only services, registration commits inside the write
callback: the allocator holds its per-scope lock until that commit is done,
so the next allocation in the scope sees the new row.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.errors import AppError, PatientNotFoundError
from src.hb_identifier.application.allocator import PatientIdAllocator
from src.hb_identifier.domain.models import PatientIdentifier
from src.hb_patient.domain.models import ImportOutcome, ImportStatus, Patient, PatientDraft
from src.hb_patient.domain.repository import PatientRepositoryProtocol
from src.hb_patient.infrastructure.persistence import PatientRepository

logger = logging.getLogger(__name__)


class PatientService:
    def __init__(
        self,
        allocator: PatientIdAllocator | None = None,
        repo: PatientRepositoryProtocol | None = None,
    ) -> None:
        self._allocator = allocator or PatientIdAllocator.from_settings()
        self._repo: PatientRepositoryProtocol = repo or PatientRepository()

    async def register(
        self, db: AsyncSession, tenant_id: str, draft: PatientDraft
    ) -> Patient:
        async def write(identifier: PatientIdentifier) -> Patient:
            patient = await self._repo.insert(db, tenant_id, draft, identifier)
            await db.commit()
            return patient

        try:
            return await self._allocator.allocate_and_save(db, write, tenant_id=tenant_id)
        except Exception:
            await db.rollback()
            raise

    async def import_patients(
        self, db: AsyncSession, tenant_id: str, drafts: list[PatientDraft]
    ) -> list[ImportOutcome]:
        """Register each draft independently and report a per-item outcome."""
        outcomes: list[ImportOutcome] = []
        for index, draft in enumerate(drafts):
            try:
                patient = await self.register(db, tenant_id, draft)
            except AppError as exc:
                outcomes.append(
                    ImportOutcome(index, ImportStatus.FAILED, error_code=exc.code, error=exc.message)
                )
            except SQLAlchemyError as exc:
                outcomes.append(ImportOutcome(index, ImportStatus.FAILED, error=str(exc)))
            else:
                outcomes.append(ImportOutcome(index, ImportStatus.CREATED, patient=patient))

        failed = sum(1 for o in outcomes if o.status is ImportStatus.FAILED)
        if failed:
            logger.warning(
                "Patient import for tenant %s: %d of %d items failed",
                tenant_id,
                failed,
                len(outcomes),
            )
        return outcomes

    async def get_patient(self, db: AsyncSession, tenant_id: str, patient_id: str) -> Patient:
        patient = await self._repo.get_by_patient_id(db, tenant_id, patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient
