"""Order API router: CRUD, status workflow and QR data endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.exceptions import (
    InvalidStatusException,
    NotFoundException,
    StaleStatusException,
    TransitionNotPermittedException,
)
from src.middleware.rate_limit import limiter
from src.models.enums import OrderStatus
from src.modules.auth import AuthenticatedUser, get_current_user
from src.modules.order.constants import TransitionFailure
from src.modules.order.schemas import (
    AllowedTransitionsResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderUpdate,
    QRSnapshotResponse,
    StatusChangeRequest,
    StatusChangeResponse,
    StatusHistoryResponse,
)
from src.modules.order.service import OrderService, TransitionResult
from src.schemas.responses import ErrorResponse

router = APIRouter(prefix="/orders", tags=["orders"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _allowed_details(allowed: tuple[OrderStatus, ...]) -> list[dict]:
    return [{"field": "allowed_next_states", "message": status.value} for status in allowed]


def _raise_for_rejection(
    order_id: uuid.UUID,
    to_status: str | None,
    expected_status: str | None,
    result: TransitionResult,
    status_field: str = "to_status",
) -> None:
    """Translate a rejected transition into the matching HTTP error."""
    failure = result.failure
    if failure == TransitionFailure.INVALID_STATUS:
        raise InvalidStatusException(
            "Invalid status",
            details=[{"field": status_field, "message": f"Unknown status '{to_status}'"}]
            if result.to_status is None
            else [{"field": "expected_status", "message": f"Unknown status '{expected_status}'"}],
        )
    if failure == TransitionFailure.NOT_FOUND:
        raise NotFoundException(f"Order {order_id} not found")
    if failure == TransitionFailure.MISSING_ROLE:
        raise TransitionNotPermittedException("A workflow role is required to change order status")
    if failure == TransitionFailure.STALE_PRECONDITION:
        raise StaleStatusException(
            f"Order is now '{result.from_status.value}', not '{expected_status}'",
            details=_allowed_details(result.allowed),
        )
    raise TransitionNotPermittedException(
        f"Transition from '{result.from_status.value}' to '{result.to_status.value}' "
        "is not permitted for your role",
        details=_allowed_details(result.allowed),
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@router.post("/", response_model=OrderResponse, status_code=201, responses={409: {"model": ErrorResponse}})
@limiter.limit(settings.rate_limit_writes)
async def create_order(
    request: Request,
    body: OrderCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an order. New orders always start in the initial status."""
    svc = OrderService(db)
    order = await svc.create_order(
        created_by=user.id,
        order_number=body.order_number,
        total_amount=body.total_amount,
        estimated_delivery_at=body.estimated_delivery_at,
        meta=body.meta,
    )
    return OrderResponse.model_validate(order)


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status: OrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=settings.order_list_max_limit),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = OrderService(db)
    items, total = await svc.list_orders(status=status, limit=limit, offset=offset)
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = OrderService(db)
    return OrderResponse.model_validate(await svc.get_order(order_id))


@router.put(
    "/{order_id}",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit_writes)
async def update_order(
    request: Request,
    order_id: uuid.UUID,
    body: OrderUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit order details. A ``status`` in the body is checked by the workflow."""
    svc = OrderService(db)
    order, transition = await svc.update_order(
        order_id=order_id,
        actor_id=user.id,
        role=user.role,
        changes=body.field_changes(),
        status=body.status,
        reason=body.reason,
        expected_status=body.expected_status,
    )
    if transition is not None and not transition.ok:
        _raise_for_rejection(
            order_id, body.status, body.expected_status, transition, status_field="status"
        )
    return OrderResponse.model_validate(order)


# ---------------------------------------------------------------------------
# Status workflow
# ---------------------------------------------------------------------------


@router.patch(
    "/{order_id}/status",
    response_model=StatusChangeResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit_writes)
async def change_order_status(
    request: Request,
    order_id: uuid.UUID,
    body: StatusChangeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Move an order to a new status. The caller's role comes from the token."""
    svc = OrderService(db)
    result = await svc.apply_transition(
        order_id=order_id,
        to_status=body.to_status,
        actor_id=user.id,
        role=user.role,
        reason=body.reason,
        expected_status=body.expected_status,
    )
    if not result.ok:
        _raise_for_rejection(order_id, body.to_status, body.expected_status, result)

    return StatusChangeResponse(
        order=OrderResponse.model_validate(result.order),
        from_status=result.from_status,
        to_status=result.to_status,
        allowed_next_states=list(result.allowed),
    )


@router.get(
    "/{order_id}/transitions",
    response_model=AllowedTransitionsResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_allowed_transitions(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Statuses the caller may move this order to right now."""
    if user.role is None:
        raise TransitionNotPermittedException("A workflow role is required to change order status")
    svc = OrderService(db)
    order, allowed = await svc.allowed_transitions(order_id, user.role)
    return AllowedTransitionsResponse(
        order_id=order.id,
        current_status=order.status,
        role=user.role,
        allowed_next_states=list(allowed),
    )


@router.get("/{order_id}/history", response_model=list[StatusHistoryResponse])
async def get_status_history(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Status ledger for an order, newest first."""
    svc = OrderService(db)
    entries = await svc.list_status_history(order_id)
    return [StatusHistoryResponse.model_validate(entry) for entry in entries]


# ---------------------------------------------------------------------------
# QR data
# ---------------------------------------------------------------------------


@router.get(
    "/{order_id}/qrcode/data",
    response_model=QRSnapshotResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_qr_data(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The payload the order's QR code encodes."""
    svc = OrderService(db)
    return QRSnapshotResponse.model_validate(await svc.get_qr_data(order_id))


@router.post(
    "/{order_id}/qrcode/regenerate",
    response_model=QRSnapshotResponse,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_writes)
async def regenerate_qr(
    request: Request,
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = OrderService(db)
    return QRSnapshotResponse.model_validate(await svc.regenerate_qr(order_id))
