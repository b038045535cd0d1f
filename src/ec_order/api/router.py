# src/ec_order/api/router.py
"""Order lifecycle REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_common.database import get_db_session
from src.ec_common.response import ApiResponse, success_response
from src.ec_gateway.auth.dependencies import get_current_actor, require_angel, require_family_member
from src.ec_identity.domain.models import Actor, Angel, FamilyMember
from src.ec_order.application.schemas import (
    CancelOrderRequest,
    CompleteServiceRequest,
    CreateOrderRequest,
    RateOrderRequest,
)
from src.ec_order.application.service import OrderLifecycleService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderLifecycleService()


def _ok(request: Request, data: object, message: str = "success") -> ApiResponse:
    resp = success_response(data, message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("", status_code=201)
async def create_order(
    body: CreateOrderRequest,
    user: Annotated[FamilyMember, Depends(require_family_member)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_order(db, user.id, body)
    return _ok(request, data.model_dump(mode="json"), "Order created")


@router.get("")
async def list_orders(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="Filter by order status"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_orders(db, actor, status, cursor, limit)
    return _ok(request, data.model_dump(mode="json"))


@router.get("/nearby")
async def list_nearby(
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float | None = Query(None, gt=0, description="Search radius in km"),
) -> ApiResponse:
    data = await _service.list_nearby(db, lat, lng, radius)
    return _ok(request, data.model_dump(mode="json"))


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_order_detail(db, actor, order_id)
    return _ok(request, data.model_dump(mode="json"))


@router.get("/{order_id}/timeline")
async def get_timeline(
    order_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_timeline(db, actor, order_id)
    return _ok(request, data.model_dump(mode="json"))


@router.post("/{order_id}/accept")
async def accept_order(
    order_id: str,
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.accept(db, angel, order_id)
    return _ok(request, data.model_dump(mode="json"), "Order accepted")


@router.post("/{order_id}/depart")
async def depart(
    order_id: str,
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.depart(db, angel, order_id)
    return _ok(request, data.model_dump(mode="json"))


@router.post("/{order_id}/arrive")
async def arrive(
    order_id: str,
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.arrive(db, angel, order_id)
    return _ok(request, data.model_dump(mode="json"))


@router.post("/{order_id}/start")
async def start_service(
    order_id: str,
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.start(db, angel, order_id)
    return _ok(request, data.model_dump(mode="json"))


@router.post("/{order_id}/complete")
async def complete_service(
    order_id: str,
    angel: Annotated[Angel, Depends(require_angel)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: CompleteServiceRequest | None = None,
) -> ApiResponse:
    body = body or CompleteServiceRequest()
    data = await _service.complete_service(db, angel, order_id, body.remark, body.images)
    return _ok(request, data.model_dump(mode="json"))


@router.post("/{order_id}/confirm")
async def confirm_complete(
    order_id: str,
    user: Annotated[FamilyMember, Depends(require_family_member)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.confirm_complete(db, user.id, order_id)
    return _ok(request, data.model_dump(mode="json"), "Order completed")


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    user: Annotated[FamilyMember, Depends(require_family_member)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel(db, user.id, order_id, body.reason)
    return _ok(request, data.model_dump(mode="json"), data.message)


@router.post("/{order_id}/rate")
async def rate_order(
    order_id: str,
    body: RateOrderRequest,
    user: Annotated[FamilyMember, Depends(require_family_member)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.rate(db, user.id, order_id, body.rating, body.comment)
    return _ok(request, data.model_dump(mode="json"), "Thanks for the feedback")
