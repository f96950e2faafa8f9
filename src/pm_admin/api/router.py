"""Admin REST API.

GET  /admin/config                 — current configuration (any caller)
PUT  /admin/config/reporter        — administrator
PUT  /admin/config/minimum-stake   — administrator
PUT  /admin/config/fee-rate        — administrator
POST /admin/fees/withdraw          — administrator
GET  /admin/invariants             — administrator audit
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.schemas import (
    SetFeeRateRequest,
    SetMinimumStakeRequest,
    SetReporterRequest,
    WithdrawFeesRequest,
)
from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_principal

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.get("/config")
async def get_config(
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_config(db)
    return success_response(result.model_dump(), request)


@router.put("/config/reporter")
async def set_reporter(
    body: SetReporterRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.set_reporter(db, principal, body.reporter_id)
    return success_response(result.model_dump(), request)


@router.put("/config/minimum-stake")
async def set_minimum_stake(
    body: SetMinimumStakeRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.set_minimum_stake(db, principal, body.minimum_stake)
    return success_response(result.model_dump(), request)


@router.put("/config/fee-rate")
async def set_fee_rate(
    body: SetFeeRateRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.set_fee_rate(db, principal, body.fee_rate)
    return success_response(result.model_dump(), request)


@router.post("/fees/withdraw")
async def withdraw_fees(
    body: WithdrawFeesRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.withdraw_fees(db, principal, body.amount)
    return success_response(result.model_dump(), request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify_all_invariants(db, principal)
    return success_response(result.model_dump(), request)
