# src/ec_admin/api/router.py
"""Admin REST API — reconciliation, guarded by X-Admin-Key."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_admin.application.service import DEFAULT_SCAN_LIMIT, ReconciliationService
from src.ec_common.database import get_db_session
from src.ec_common.response import ApiResponse, success_response
from src.ec_gateway.auth.dependencies import require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
_service = ReconciliationService()


@router.get("/reconciliation")
async def reconciliation_report(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(DEFAULT_SCAN_LIMIT, ge=1, le=5000),
) -> ApiResponse:
    report = await _service.report(db, limit)
    resp = success_response(report.to_dict())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/reconciliation/settle")
async def settle_unsettled(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(DEFAULT_SCAN_LIMIT, ge=1, le=5000),
) -> ApiResponse:
    result = await _service.settle_unsettled(db, limit)
    resp = success_response(result.to_dict(), "Settlement run finished")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
