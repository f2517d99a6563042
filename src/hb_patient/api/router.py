"""hb_patient REST endpoints.

POST /patients               — register one patient under a new patient id
POST /patients/import        — bulk register, per-item outcomes
GET  /patients/{patient_id}  — fetch within the caller's tenant

The tenant comes from the X-Tenant-ID header (see hb_gateway.tenant).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_common.database import get_db_session
from src.hb_common.response import ApiResponse, success_response
from src.hb_gateway.tenant import get_tenant_id
from src.hb_patient.application.schemas import (
    PatientCreateRequest,
    PatientImportRequest,
    PatientImportResponse,
    PatientResponse,
)
from src.hb_patient.application.service import PatientService

router = APIRouter(prefix="/patients", tags=["patients"])
_service = PatientService()


def _get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def register_patient(
    request: Request,
    body: PatientCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    patient = await _service.register(db, tenant_id, body.to_draft())
    resp = success_response(PatientResponse.from_domain(patient).model_dump(mode="json"))
    resp.request_id = _get_request_id(request)
    return resp


@router.post("/import", status_code=status.HTTP_200_OK, response_model=ApiResponse)
async def import_patients(
    request: Request,
    body: PatientImportRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    outcomes = await _service.import_patients(
        db, tenant_id, [item.to_draft() for item in body.items]
    )
    resp = success_response(PatientImportResponse.from_outcomes(outcomes).model_dump())
    resp.request_id = _get_request_id(request)
    return resp


@router.get("/{patient_id}", response_model=ApiResponse)
async def get_patient(
    patient_id: str,
    request: Request,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    patient = await _service.get_patient(db, tenant_id, patient_id)
    resp = success_response(PatientResponse.from_domain(patient).model_dump(mode="json"))
    resp.request_id = _get_request_id(request)
    return resp
