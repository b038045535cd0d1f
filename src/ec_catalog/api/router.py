"""Service catalog REST API — public, no authentication."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_catalog.application.service import CatalogApplicationService
from src.ec_common.database import get_db_session
from src.ec_common.response import ApiResponse, success_response

router = APIRouter(prefix="/service-types", tags=["catalog"])

_service = CatalogApplicationService()


@router.get("")
async def list_service_types(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_service_types(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
