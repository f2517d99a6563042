"""API tests for hb_patient routes; the service and DB session are stubbed."""

import uuid
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.hb_common.database import get_db_session
from src.hb_common.errors import PatientNotFoundError
from src.hb_patient.api import router as patient_router
from src.hb_patient.domain.models import ImportOutcome, ImportStatus, Patient
from src.main import app

HEADERS = {"X-Tenant-ID": "clinic-a"}
BODY = {"first_name": "Ada", "last_name": "Lovelace", "date_of_birth": "1985-12-10"}


def _patient(patient_id: str = "PAT-20251100001", degraded: bool = False) -> Patient:
    now = datetime.now(UTC)
    return Patient(
        id=str(uuid.uuid4()),
        tenant_id="clinic-a",
        patient_id=patient_id,
        id_degraded=degraded,
        first_name="Ada",
        last_name="Lovelace",
        date_of_birth=date(1985, 12, 10),
        phone=None,
        email=None,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def service(monkeypatch):
    stub = MagicMock()
    monkeypatch.setattr(patient_router, "_service", stub)

    async def fake_session():
        yield MagicMock()

    app.dependency_overrides[get_db_session] = fake_session
    yield stub
    app.dependency_overrides.clear()


class TestRegisterPatient:
    async def test_created(self, client, service) -> None:
        service.register = AsyncMock(return_value=_patient())

        resp = await client.post("/api/v1/patients", json=BODY, headers=HEADERS)

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["patient_id"] == "PAT-20251100001"
        assert data["id_degraded"] is False
        assert data["date_of_birth"] == "1985-12-10"
        tenant_id = service.register.call_args.args[1]
        assert tenant_id == "clinic-a"

    async def test_missing_tenant(self, client, service) -> None:
        resp = await client.post("/api/v1/patients", json=BODY)

        assert resp.status_code == 400
        assert resp.json()["code"] == 1001

    async def test_blank_name_rejected(self, client, service) -> None:
        resp = await client.post(
            "/api/v1/patients", json={**BODY, "first_name": "   "}, headers=HEADERS
        )
        assert resp.status_code == 422

    async def test_future_birth_date_rejected(self, client, service) -> None:
        resp = await client.post(
            "/api/v1/patients", json={**BODY, "date_of_birth": "2999-01-01"}, headers=HEADERS
        )
        assert resp.status_code == 422


class TestImportPatients:
    async def test_partial_failure_reported(self, client, service) -> None:
        service.import_patients = AsyncMock(
            return_value=[
                ImportOutcome(0, ImportStatus.CREATED, patient=_patient()),
                ImportOutcome(1, ImportStatus.FAILED, error_code=6002, error="taken"),
            ]
        )

        resp = await client.post(
            "/api/v1/patients/import", json={"items": [BODY, BODY]}, headers=HEADERS
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert (data["created"], data["failed"]) == (1, 1)
        assert data["results"][1] == {
            "index": 1,
            "status": "FAILED",
            "patient_id": None,
            "id_degraded": None,
            "error_code": 6002,
            "error": "taken",
        }

    async def test_empty_batch_rejected(self, client, service) -> None:
        resp = await client.post("/api/v1/patients/import", json={"items": []}, headers=HEADERS)
        assert resp.status_code == 422


class TestGetPatient:
    async def test_found(self, client, service) -> None:
        service.get_patient = AsyncMock(return_value=_patient(degraded=True))

        resp = await client.get("/api/v1/patients/PAT-20251100001", headers=HEADERS)

        assert resp.status_code == 200
        assert resp.json()["data"]["id_degraded"] is True

    async def test_not_found(self, client, service) -> None:
        service.get_patient = AsyncMock(side_effect=PatientNotFoundError("PAT-X"))

        resp = await client.get("/api/v1/patients/PAT-X", headers=HEADERS)

        assert resp.status_code == 404
        assert resp.json()["code"] == 7001


class TestHealth:
    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.json()["status"] == "ok"
