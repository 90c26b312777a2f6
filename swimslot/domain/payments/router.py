"""Payment router - Checkout, verification, gateway callbacks and reconciliation"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session, require_admin
from ...database import get_db
from ...webhook_security import WebhookSignatureError
from .schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentResponse,
    RecordPaymentRequest,
    VerifyPaymentRequest,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])
webhook_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/create-order", response_model=CreateOrderResponse, status_code=201)
async def create_order(data: CreateOrderRequest, service: PaymentService = Depends(get_payment_service)):
    """Hold the chosen days and return the gateway redirect URL"""
    return await service.create_order(data.user, data.start_date, data.start_time, data.days)


@router.post("/verify", response_model=PaymentResponse)
async def verify_payment(data: VerifyPaymentRequest, service: PaymentService = Depends(get_payment_service)):
    """Called when the customer returns from the gateway"""
    return await service.verify_payment(data.merchant_order_id)


@router.get("/status/{merchant_order_id}", response_model=PaymentResponse)
async def get_order_status(merchant_order_id: str, service: PaymentService = Depends(get_payment_service)):
    return await service.verify_payment(merchant_order_id)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    status: Optional[str] = Query(None),
    _admin: SessionContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return service.list_payments(status)


@router.post("/record", response_model=PaymentResponse, status_code=201)
async def record_payment(
    data: RecordPaymentRequest,
    _admin: SessionContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Record a payment taken outside the gateway"""
    return service.record_payment(
        data.booking_id, data.amount, data.status, data.payment_method, data.payment_id
    )


@router.post("/reconcile")
async def reconcile_payments(
    _admin: SessionContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Release orders the gateway never resolved"""
    return service.release_stale_payments()


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    context: SessionContext = Depends(get_current_session),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.get_payment(payment_id)
    owner = payment.booking.user_id if payment.booking else None
    if not context.is_admin and owner != context.user_id:
        raise HTTPException(status_code=403, detail="Not allowed to access this payment")
    return payment


# ============================================================================
# GATEWAY CALLBACK
# ============================================================================


@webhook_router.post("/phonepe")
async def phonepe_webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    raw_body = await request.body()
    try:
        result = service.handle_webhook(raw_body, request.headers.get("X-VERIFY", ""))
    except WebhookSignatureError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return {"success": True, **result}
