"""pm_position REST endpoints.

POST /markets/{market_id}/positions            — submit stake (caller)
GET  /markets/{market_id}/positions/{user_id}  — read one position
GET  /positions                                — caller's positions
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_principal
from src.pm_position.application.schemas import SubmitStakeRequest
from src.pm_position.application.service import PositionApplicationService

router = APIRouter(tags=["positions"])

_service = PositionApplicationService()


@router.post("/markets/{market_id}/positions", status_code=status.HTTP_201_CREATED)
async def submit_stake(
    market_id: int,
    body: SubmitStakeRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.submit_stake(db, principal, market_id, body.side, body.amount)
    return success_response(result.model_dump(), request)


@router.get("/markets/{market_id}/positions/{user_id}")
async def get_position(
    market_id: int,
    user_id: str,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_position(db, market_id, user_id)
    return success_response(result.model_dump(), request)


@router.get("/positions")
async def list_my_positions(
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_positions(db, principal)
    return success_response(result.model_dump(), request)
