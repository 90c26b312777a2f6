"""Invoice router - Customer invoice access and admin generation/sending"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session, require_admin
from ...database import get_db
from .schemas import InvoiceCreate, InvoiceResponse, SendInvoiceRequest
from .service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


@router.get("/me", response_model=list[InvoiceResponse])
async def my_invoices(
    context: SessionContext = Depends(get_current_session),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.get_user_invoices(context.user_id)


@router.get("/booking/{booking_id}", response_model=InvoiceResponse)
async def get_invoice_for_booking(
    booking_id: str,
    context: SessionContext = Depends(get_current_session),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.get_by_booking(booking_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    if not context.is_admin and invoice.booking.user_id != context.user_id:
        raise HTTPException(status_code=403, detail="Not allowed to access this invoice")
    return invoice


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    context: SessionContext = Depends(get_current_session),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.get_invoice(invoice_id)
    if not context.is_admin and invoice.booking.user_id != context.user_id:
        raise HTTPException(status_code=403, detail="Not allowed to access this invoice")
    return invoice


@router.get("", response_model=list[InvoiceResponse])
async def list_invoices(
    _admin: SessionContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.list_invoices()


@router.post("", response_model=InvoiceResponse, status_code=201)
async def generate_invoice(
    data: InvoiceCreate,
    admin: SessionContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.generate_invoice(data.booking_id, admin.user_id, data.amount)


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: str,
    data: SendInvoiceRequest,
    _admin: SessionContext = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.send_invoice(invoice_id, data.channels)
