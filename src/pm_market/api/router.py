"""pm_market REST endpoints.

POST /markets                        — create (administrator)
GET  /markets                        — list, newest first, cursor pagination
GET  /markets/clock                  — current logical block height
GET  /markets/{market_id}            — full detail incl. phase
POST /markets/{market_id}/resolve    — resolve (reporter)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_principal
from src.pm_market.application.schemas import CreateMarketRequest, ResolveMarketRequest
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(
        db, principal, body.start_price, body.start_block, body.end_block
    )
    return success_response(result.model_dump(), request)


@router.get("")
async def list_markets(
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_markets(db, cursor, limit)
    return success_response(result.model_dump(), request)


@router.get("/clock")
async def get_clock(
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
) -> ApiResponse:
    return success_response(_service.current_clock().model_dump(), request)


@router.get("/{market_id}")
async def get_market(
    market_id: int,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/resolve")
async def resolve_market(
    market_id: int,
    body: ResolveMarketRequest,
    request: Request,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(db, principal, market_id, body.end_price)
    return success_response(result.model_dump(), request)
