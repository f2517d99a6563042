"""Domain models for hb_patient — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


@dataclass
class PatientDraft:
    """Patient fields supplied by the caller, before an identifier exists."""

    first_name: str
    last_name: str
    date_of_birth: date
    phone: str | None = None
    email: str | None = None


@dataclass
class Patient:
    id: str
    tenant_id: str
    patient_id: str
    id_degraded: bool
    first_name: str
    last_name: str
    date_of_birth: date
    phone: str | None
    email: str | None
    created_at: datetime
    updated_at: datetime


class ImportStatus(str, Enum):
    CREATED = "CREATED"
    FAILED = "FAILED"


@dataclass
class ImportOutcome:
    """Result for one item of a bulk import; failures are reported, not skipped."""

    index: int
    status: ImportStatus
    patient: Patient | None = None
    error_code: int | None = None
    error: str | None = None
