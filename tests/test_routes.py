from datetime import date, timedelta

import pytest

from claimflow import db
from claimflow.models import Claim, ClaimStatus, ClaimType


def test_advance_requires_login(app, org, make_claim):
    claim = make_claim(org.priya)

    response = app.test_client().post("/approvals/advance", json={"claim_id": claim.id, "current_status": "submitted"})

    assert response.status_code == 401


def test_advance(app, org, make_claim):
    claim = make_claim(org.priya)
    client = app.test_client(user=org.admin)

    response = client.post("/approvals/advance", json={"claim_id": claim.id, "current_status": "submitted"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["approver_email"] == org.junior_admin.email
    assert body["approver_role"] == "junior_admin"
    assert body["next_status"] == "verified"
    assert body["unassigned"] is False
    assert "warning" not in body


def test_advance_missing_fields(app, org):
    response = app.test_client(user=org.admin).post("/approvals/advance", json={"claim_id": "x"})

    assert response.status_code == 400
    assert "current_status" in response.get_json()["error"]


def test_advance_unknown_claim(app, org):
    response = app.test_client(user=org.admin).post(
        "/approvals/advance", json={"claim_id": "unknown-id", "current_status": "submitted"}
    )

    assert response.status_code == 404
    body = response.get_json()
    assert body == {
        "success": False,
        "error": "Claim not found: unknown-id",
        "error_code": "ClaimNotFound",
        "retryable": False,
    }


def test_advance_invalid_status(app, org, make_claim):
    claim = make_claim(org.priya)

    response = app.test_client(user=org.admin).post(
        "/approvals/advance", json={"claim_id": claim.id, "current_status": "paid"}
    )

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "InvalidStatus"


def test_advance_unassigned_is_soft(app, make_user, make_claim):
    admin = make_user("root@example.com", "admin")
    claim = make_claim(make_user("dev@example.com"), status=ClaimStatus.CFO_APPROVED)

    response = app.test_client(user=admin).post(
        "/approvals/advance", json={"claim_id": claim.id, "current_status": "cfo_approved"}
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["approver_email"] is None
    assert body["unassigned"] is True
    assert body["warning"] == "UnassignedApprover"


def test_decision_route(app, org, make_claim):
    claim = make_claim(org.priya)

    denied = app.test_client(user=org.cfo).post(f"/approvals/{claim.id}/decision", json={"action": "approve"})
    assert denied.status_code == 403
    assert denied.get_json()["error_code"] == "NotCurrentApprover"

    response = app.test_client(user=org.junior_admin).post(
        f"/approvals/{claim.id}/decision", json={"action": "approve", "remarks": "ok"}
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["claim"]["status"] == "verified"
    assert body["routing"]["approver_email"] == org.suresh.email


def test_decision_route_requires_action(app, org, make_claim):
    claim = make_claim(org.priya)

    response = app.test_client(user=org.junior_admin).post(f"/approvals/{claim.id}/decision", json={})

    assert response.status_code == 400


def test_pending_for_role_holder(app, org, make_claim):
    waiting = make_claim(org.priya)
    make_claim(org.priya, status=ClaimStatus.VERIFIED)

    response = app.test_client(user=org.junior_admin).get("/approvals/pending")

    assert [c["id"] for c in response.get_json()["claims"]] == [waiting.id]


def test_pending_for_manager_only_shows_own_reports(app, org, make_user, make_claim):
    outsider = make_user("omar@example.com", manager_email="someone-else@example.com")
    mine = make_claim(org.priya, status=ClaimStatus.VERIFIED)
    make_claim(outsider, status=ClaimStatus.VERIFIED)

    response = app.test_client(user=org.suresh).get("/approvals/pending")

    assert [c["id"] for c in response.get_json()["claims"]] == [mine.id]


def test_stages_route(app, org):
    body = app.test_client(user=org.priya).get("/approvals/stages").get_json()

    assert body["terminal_status"] == "paid"
    assert [s["status"] for s in body["stages"]][0] == "submitted"


def test_employee_submits_claim(app, org):
    client = app.test_client(user=org.priya)

    response = client.post("/employee/claims", json={"amount": "2450.50", "description": "Flight to Pune"})

    assert response.status_code == 201
    body = response.get_json()
    assert body["claim"]["status"] == "submitted"
    assert body["claim"]["current_approver_role"] == "junior_admin"
    assert body["claim"]["claim_number"].startswith("CLM-")
    assert body["routing"]["approver_email"] == org.junior_admin.email

    listed = client.get("/employee/claims").get_json()["claims"]
    assert [c["id"] for c in listed] == [body["claim"]["id"]]


def test_claim_numbers_are_sequential(app, org):
    client = app.test_client(user=org.priya)

    first = client.post("/employee/claims", json={"amount": 10}).get_json()["claim"]["claim_number"]
    second = client.post("/employee/claims", json={"amount": 20}).get_json()["claim"]["claim_number"]

    assert first.endswith("-0001")
    assert second.endswith("-0002")


def test_employee_submit_validation(app, org):
    client = app.test_client(user=org.priya)

    assert client.post("/employee/claims", json={}).status_code == 400
    assert client.post("/employee/claims", json={"amount": "abc"}).status_code == 400
    assert client.post("/employee/claims", json={"amount": -5}).status_code == 400
    assert client.post("/employee/claims", json={"amount": 5, "claim_type": "gift"}).status_code == 400
    assert Claim.query.count() == 0


def test_claim_detail_visibility(app, org, make_claim, driver):
    claim = make_claim(org.priya)
    driver.record_decision(claim.id, org.junior_admin, "approve")

    owner = app.test_client(user=org.priya).get(f"/employee/claims/{claim.id}")
    assert owner.status_code == 200
    assert len(owner.get_json()["audit_trail"]) == 1

    assert app.test_client(user=org.rajesh).get(f"/employee/claims/{claim.id}").status_code == 403
    assert app.test_client(user=org.admin_head).get(f"/employee/claims/{claim.id}").status_code == 200
    assert app.test_client(user=org.priya).get("/employee/claims/unknown-id").status_code == 404


def test_bulk_submit_permissions(app, org, make_claim):
    claim = make_claim(org.priya, status=ClaimStatus.DRAFT, claim_type=ClaimType.NORMAL, is_bulk_upload=True)

    assert app.test_client(user=org.priya).post(f"/bulk/claims/{claim.id}/submit").status_code == 403

    response = app.test_client(user=org.admin_head).post(f"/bulk/claims/{claim.id}/submit")

    assert response.status_code == 200
    assert response.get_json()["claim"]["status"] == "cfo_approved"
    assert db.session.get(Claim, claim.id).current_approver_role == "finance"


def test_bulk_submit_non_draft(app, org, make_claim):
    claim = make_claim(org.priya)

    response = app.test_client(user=org.cro).post(f"/bulk/claims/{claim.id}/submit")

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "InvalidStatus"


def test_submitted_claim_gets_sla_date(app, org):
    response = app.test_client(user=org.priya).post("/employee/claims", json={"amount": 10})

    assert response.get_json()["claim"]["sla_date"] == (date.today() + timedelta(days=45)).isoformat()


@pytest.mark.parametrize(
    "days_left, expected",
    [(None, "normal"), (-2, "urgent"), (3, "urgent"), (4, "warning"), (10, "warning"), (11, "normal")],
)
def test_sla_status(org, make_claim, days_left, expected):
    claim = make_claim(org.priya)
    if days_left is not None:
        claim.sla_date = date(2026, 3, 1) + timedelta(days=days_left)

    assert claim.sla_status(today=date(2026, 3, 1)) == expected


def test_pending_reports_sla_status(app, org, make_claim):
    claim = make_claim(org.priya)
    claim.sla_date = date.today() + timedelta(days=2)
    db.session.commit()

    [pending] = app.test_client(user=org.junior_admin).get("/approvals/pending").get_json()["claims"]

    assert pending["sla_status"] == "urgent"


def test_resubmit_route(app, org, make_claim):
    claim = make_claim(org.priya, status=ClaimStatus.SENT_BACK)
    client = app.test_client(user=org.priya)

    assert client.post(f"/employee/claims/{claim.id}/resubmit", json={"amount": "-1"}).status_code == 400

    response = client.post(
        f"/employee/claims/{claim.id}/resubmit", json={"amount": "1750", "description": "Invoice added"}
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["claim"]["status"] == "submitted"
    assert body["claim"]["description"] == "Invoice added"
    assert body["routing"]["approver_email"] == org.junior_admin.email

    again = client.post(f"/employee/claims/{claim.id}/resubmit", json={})
    assert again.status_code == 400
    assert again.get_json()["error_code"] == "InvalidStatus"


def test_resubmit_route_rejects_other_employees(app, org, make_claim):
    claim = make_claim(org.priya, status=ClaimStatus.SENT_BACK)

    response = app.test_client(user=org.rajesh).post(f"/employee/claims/{claim.id}/resubmit", json={})

    assert response.status_code == 403
    assert response.get_json()["error_code"] == "NotClaimOwner"
