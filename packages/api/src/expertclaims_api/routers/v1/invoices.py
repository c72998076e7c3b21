"""Invoice preview endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from expertclaims_api.dependencies import AuthUser, require_staff
from expertclaims_api.responses import wrap_response
from expertclaims_api.schemas import InvoicePreviewRequest
from expertclaims_api.services import invoice_service

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("/preview")
async def preview_invoice(body: InvoicePreviewRequest, user: AuthUser = Depends(require_staff)):
    return wrap_response(invoice_service.preview_for_phase(user, body.phase_id))
