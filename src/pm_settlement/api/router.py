"""pm_settlement REST endpoints.

POST /markets/{market_id}/claim          — claim payout (caller's position)
GET  /markets/{market_id}/claim/preview  — same checks and math, no mutation
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_principal
from src.pm_settlement.application.service import SettlementApplicationService

router = APIRouter(prefix="/markets", tags=["settlement"])

_service = SettlementApplicationService()


@router.post("/{market_id}/claim")
async def claim(
    market_id: int,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.claim(db, principal, market_id)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/claim/preview")
async def preview_claim(
    market_id: int,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.preview_claim(db, principal, market_id)
    return success_response(result.model_dump(), request)
