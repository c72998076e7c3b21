from fastapi import APIRouter

from expertclaims_api.routers.v1 import (
    auth,
    cases,
    expenses,
    invoices,
    leaves,
    lookups,
    partners,
    payslips,
    users,
)

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(auth.router)
v1_router.include_router(cases.router)
v1_router.include_router(lookups.router)
v1_router.include_router(leaves.router)
v1_router.include_router(expenses.router)
v1_router.include_router(payslips.router)
v1_router.include_router(partners.router)
v1_router.include_router(users.router)
v1_router.include_router(invoices.router)
