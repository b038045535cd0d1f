"""Payment REST API — create-payment, gateway callback, refund, withdraw, income."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.database import get_db_session
from src.ec_common.errors import InvalidSignatureError
from src.ec_common.response import ApiResponse, success_response
from src.ec_gateway.auth.dependencies import require_angel, require_family_member
from src.ec_identity.domain.models import Angel, FamilyMember
from src.ec_payment.application.schemas import CreatePaymentRequest, RefundRequest, WithdrawRequest
from src.ec_payment.application.service import PaymentApplicationService

router = APIRouter(prefix="/payment", tags=["payment"])

_service = PaymentApplicationService()


@router.post("/create")
async def create_payment(
    body: CreatePaymentRequest,
    user: Annotated[FamilyMember, Depends(require_family_member)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_payment(db, user.id, body.order_id)
    resp = success_response(data.model_dump(), data.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/notify")
async def payment_notify(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> JSONResponse:
    """Gateway callback. Answers in the provider's {code, message} format."""
    body = await request.body()
    try:
        ack = await _service.handle_callback(db, request.headers, body)
    except InvalidSignatureError as e:
        return JSONResponse(status_code=e.http_status, content={"code": "FAIL", "message": e.message})
    return JSONResponse(status_code=200 if ack["code"] == "SUCCESS" else 400, content=ack)


@router.post("/refund")
async def refund(
    body: RefundRequest,
    user: Annotated[FamilyMember, Depends(require_family_member)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.refund(db, user.id, body.order_id, body.reason)
    resp = success_response(data.model_dump(), data.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/withdraw")
async def withdraw(
    body: WithdrawRequest,
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.withdraw(
        db, angel.id, body.amount_cents, body.method, body.bank_card_id
    )
    resp = success_response(data.model_dump(), "Withdrawal submitted")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/income")
async def list_income(
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_income(db, angel.id, cursor, limit)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
