"""Tests for payslips."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from tests.conftest import make_supabase

PATCH_TARGET = "expertclaims_api.services.payslip_service.get_supabase_client"

PAYSLIP = {
    "id": "slip-1",
    "employee_id": "employee-1",
    "month": "2025-02",
    "gross_pay": 85000.0,
    "net_pay": 72000.0,
}


def test_list_own_payslips_for_year(client, login_as):
    login_as("employee")
    mock = make_supabase({"employee_payslips": ([PAYSLIP], 1)})
    with patch(PATCH_TARGET, return_value=mock):
        response = client.get("/v1/payslips/mine", params={"year": 2025})

    assert response.status_code == 200
    assert response.json()["data"][0]["month"] == "2025-02"
    chain = mock.table("employee_payslips")
    chain.eq.assert_any_call("employee_id", "employee-1")
    chain.gte.assert_called_once_with("month", "2025-01")
    chain.lte.assert_called_once_with("month", "2025-12")


def test_owner_reads_payslip(client, login_as):
    login_as("employee")
    with patch(PATCH_TARGET, return_value=make_supabase({"employee_payslips": ([PAYSLIP], 1)})):
        response = client.get("/v1/payslips/slip-1")
    assert response.status_code == 200


def test_other_employee_gets_not_found(client, login_as):
    login_as("employee", user_id="employee-2")
    with patch(PATCH_TARGET, return_value=make_supabase({"employee_payslips": ([PAYSLIP], 1)})):
        response = client.get("/v1/payslips/slip-1")
    assert response.status_code == 404


def test_hr_reads_any_payslip(client, login_as):
    login_as("hr")
    with patch(PATCH_TARGET, return_value=make_supabase({"employee_payslips": ([PAYSLIP], 1)})):
        response = client.get("/v1/payslips/slip-1")
    assert response.status_code == 200


def test_hr_issues_payslip(client, login_as):
    login_as("hr")
    mock = make_supabase()
    with patch(PATCH_TARGET, return_value=mock):
        response = client.post(
            "/v1/payslips",
            json={"employee_id": "employee-1", "month": "2025-03", "gross_pay": "85000", "net_pay": "72000.50"},
        )
    assert response.status_code == 201
    inserted = mock.table("employee_payslips").insert.call_args[0][0]
    assert inserted["net_pay"] == 72000.5
    assert inserted["month"] == "2025-03"


def test_net_above_gross_rejected(client, login_as):
    login_as("admin")
    with patch(PATCH_TARGET, return_value=make_supabase()):
        response = client.post(
            "/v1/payslips",
            json={"employee_id": "employee-1", "month": "2025-03", "gross_pay": "100", "net_pay": "200"},
        )
    assert response.status_code == 422


def test_duplicate_month_conflicts(client, login_as):
    login_as("admin")
    mock = make_supabase({"employee_payslips": ([{"id": "slip-1"}], 1)})
    with patch(PATCH_TARGET, return_value=mock):
        response = client.post(
            "/v1/payslips",
            json={"employee_id": "employee-1", "month": "2025-02", "gross_pay": "100", "net_pay": "90"},
        )
    assert response.status_code == 409
    mock.table("employee_payslips").insert.assert_not_called()


@pytest.mark.parametrize("month", ["2025-13", "2025-1", "March"])
def test_bad_month_rejected(client, login_as, month):
    login_as("admin")
    response = client.post(
        "/v1/payslips",
        json={"employee_id": "employee-1", "month": month, "gross_pay": "100", "net_pay": "90"},
    )
    assert response.status_code == 422


def test_employee_cannot_issue(client, login_as):
    login_as("employee")
    response = client.post(
        "/v1/payslips",
        json={"employee_id": "employee-1", "month": "2025-03", "gross_pay": "100", "net_pay": "90"},
    )
    assert response.status_code == 403
