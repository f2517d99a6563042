from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from src.hb_patient.domain.models import ImportOutcome, Patient, PatientDraft


class PatientCreateRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: date
    phone: str | None = Field(None, max_length=32)
    email: str | None = Field(None, max_length=255)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("date_of_birth")
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("date_of_birth must not be in the future")
        return v

    def to_draft(self) -> PatientDraft:
        return PatientDraft(
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            phone=self.phone,
            email=self.email,
        )


class PatientResponse(BaseModel):
    id: str
    tenant_id: str
    patient_id: str
    id_degraded: bool
    first_name: str
    last_name: str
    date_of_birth: date
    phone: str | None = None
    email: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, p: Patient) -> "PatientResponse":
        return cls(
            id=p.id,
            tenant_id=p.tenant_id,
            patient_id=p.patient_id,
            id_degraded=p.id_degraded,
            first_name=p.first_name,
            last_name=p.last_name,
            date_of_birth=p.date_of_birth,
            phone=p.phone,
            email=p.email,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )


class PatientImportRequest(BaseModel):
    items: list[PatientCreateRequest] = Field(min_length=1, max_length=500)


class ImportItemResult(BaseModel):
    index: int
    status: str
    patient_id: str | None = None
    id_degraded: bool | None = None
    error_code: int | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, o: ImportOutcome) -> "ImportItemResult":
        return cls(
            index=o.index,
            status=o.status.value,
            patient_id=o.patient.patient_id if o.patient else None,
            id_degraded=o.patient.id_degraded if o.patient else None,
            error_code=o.error_code,
            error=o.error,
        )


class PatientImportResponse(BaseModel):
    created: int
    failed: int
    results: list[ImportItemResult]

    @classmethod
    def from_outcomes(cls, outcomes: list[ImportOutcome]) -> "PatientImportResponse":
        results = [ImportItemResult.from_outcome(o) for o in outcomes]
        created = sum(1 for r in results if r.status == "CREATED")
        return cls(created=created, failed=len(results) - created, results=results)
