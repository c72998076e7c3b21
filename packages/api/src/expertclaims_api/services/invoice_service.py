"""
Tax invoices for case payment phases.

GST follows the place of supply: when the customer's GSTIN state code (its
first two characters) matches the company's, the invoice carries CGST and
SGST at 9% each; otherwise, including when the customer has no GSTIN, it
carries IGST at 18%. All money is Decimal, rounded half-up to paise.
"""

from __future__ import annotations

import secrets
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.constants import (
    CGST_RATE,
    COMPANY_DETAILS,
    IGST_RATE,
    PAYMENT_TERMS,
    SGST_RATE,
)
from expertclaims_shared.db import get_supabase_client

from expertclaims_api.errors import InvalidRequest, NotFound
from expertclaims_api.services import case_service

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)

_PAISE = Decimal("0.01")

_UNITS = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]
_GROUPS = ["", "Thousand", "Million", "Billion"]


def _money(value: Decimal) -> Decimal:
    return value.quantize(_PAISE, rounding=ROUND_HALF_UP)


def _below_thousand(n: int) -> list[str]:
    words: list[str] = []
    if n >= 100:
        words += [_UNITS[n // 100], "Hundred"]
        n %= 100
    if n >= 20:
        words.append(_TENS[n // 10])
        n %= 10
    if n:
        words.append(_UNITS[n])
    return words


def amount_in_words(n: int) -> str:
    """English words for a whole amount, e.g. 1234 -> "One Thousand Two Hundred Thirty Four"."""
    if n < 0:
        raise ValueError("amount must not be negative")
    if n == 0:
        return "Zero"
    if n >= 1000 ** len(_GROUPS):
        raise ValueError("amount too large to spell")

    parts: list[str] = []
    group = 0
    while n > 0:
        n, chunk = divmod(n, 1000)
        if chunk:
            words = _below_thousand(chunk)
            if _GROUPS[group]:
                words.append(_GROUPS[group])
            parts = words + parts
        group += 1
    return " ".join(parts)


def invoice_number(today: date, sequence: int) -> str:
    return f"INV/{today:%Y/%m/%d}/{sequence % 10000:04d}"


def state_code(gstin: str | None) -> str:
    gstin = (gstin or "").strip()
    return gstin[:2] if len(gstin) >= 2 else ""


def compute_taxes(subtotal: Decimal, customer_gstin: str | None) -> dict[str, Decimal]:
    subtotal = _money(subtotal)
    customer_state = state_code(customer_gstin)
    if customer_state and customer_state == state_code(COMPANY_DETAILS["gst_number"]):
        cgst = _money(subtotal * CGST_RATE)
        sgst = _money(subtotal * SGST_RATE)
        igst = Decimal("0.00")
    else:
        cgst = sgst = Decimal("0.00")
        igst = _money(subtotal * IGST_RATE)
    return {
        "subtotal": subtotal,
        "cgst_total": cgst,
        "sgst_total": sgst,
        "igst_total": igst,
        "grand_total": subtotal + cgst + sgst + igst,
    }


def _customer_fields(customer: dict[str, Any]) -> dict[str, Any]:
    merged = {**(customer.get("details") or {}), **customer}
    return {
        "name": merged.get("full_name") or merged.get("customer_name") or "Customer",
        "address": merged.get("address"),
        "city": merged.get("city"),
        "state": merged.get("state"),
        "pincode": merged.get("pincode"),
        "gst_number": merged.get("gstin") or merged.get("gst_number"),
        "pan_number": merged.get("pan") or merged.get("pan_number"),
        "phone": merged.get("phone"),
        "email": merged.get("email"),
    }


def prepare_invoice(
    phase: dict[str, Any],
    case: dict[str, Any],
    customer: dict[str, Any] | None,
    *,
    today: date,
    sequence: int,
) -> dict[str, Any]:
    amount = Decimal(str(phase.get("phase_amount") or "0"))
    if amount <= 0:
        raise InvalidRequest("Payment phase has no billable amount")

    customer_details = _customer_fields(customer or {})
    totals = compute_taxes(amount, customer_details["gst_number"])
    rupees = int(totals["grand_total"])
    return {
        "invoice_number": invoice_number(today, sequence),
        "invoice_date": today.strftime("%d/%m/%Y"),
        "company_details": dict(COMPANY_DETAILS),
        "customer_details": customer_details,
        "case_details": {
            "description": phase.get("phase_name") or "Service Description",
            "case_number": case.get("task_id") or "N/A",
        },
        "totals": {k: str(v) for k, v in totals.items()},
        "amount_in_words": f"{amount_in_words(rupees)} Rupees Only",
        "payment_terms": PAYMENT_TERMS,
    }


def preview_for_phase(
    user: "AuthUser",
    phase_id: str,
    *,
    today: date | None = None,
    sequence: int | None = None,
) -> dict[str, Any]:
    """Load a payment phase with its case and customer and build the invoice."""
    supabase = get_supabase_client(service_role=True)
    result = supabase.table("case_payment_phases").select("*").eq("id", phase_id).limit(1).execute()
    if not result.data:
        raise NotFound(f"Payment phase '{phase_id}' not found")
    phase = result.data[0]

    case = case_service.get_case(user, phase["task_id"])
    customer = None
    if case.get("customer_id"):
        found = (
            supabase.table("profiles")
            .select("*")
            .eq("id", case["customer_id"])
            .limit(1)
            .execute()
        )
        customer = found.data[0] if found.data else None

    invoice = prepare_invoice(
        phase,
        case,
        customer,
        today=today or date.today(),
        sequence=sequence if sequence is not None else secrets.randbelow(10000),
    )
    log.info("invoice_prepared", phase_id=phase_id, invoice_number=invoice["invoice_number"])
    return invoice
