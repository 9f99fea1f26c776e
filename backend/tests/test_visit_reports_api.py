"""
Fieldforce - Visit reports API tests
MR scoping, owner forcing, admin-only terminal states and approval.
"""

import pytest

from config import db


async def _create_report(client, headers, doctor, product=None, **extra):
    body = {
        "doctor": doctor["id"],
        "visitDetails": {"visitDate": "2025-01-15", "visitType": "Regular"},
        **extra,
    }
    if product:
        body["interaction"] = {
            "productsDiscussed": [{"product": product["id"], "samplesGiven": 5, "interestLevel": "High"}],
            "visitOutcome": "Positive",
        }
        body["orders"] = [{"product": product["id"], "quantity": 4, "unitPrice": 25.5}]
    res = await client.post("/api/visit-reports", headers=headers, json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"]


class TestCreate:

    @pytest.mark.asyncio
    async def test_mr_owner_forced(self, client, mr, other_mr, doctor):
        report = await _create_report(client, mr["headers"], doctor, mr=other_mr["user"]["id"])
        assert report["mr"] == mr["user"]["id"]
        assert report["visitId"] == "VIS000001"
        assert report["mrInfo"]["name"] == "First MR"
        assert report["doctorInfo"]["name"] == "Dr. Mehta"

    @pytest.mark.asyncio
    async def test_mr_cannot_create_approved(self, client, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor, status="Approved")
        assert report["status"] == "Draft"
        assert "approvedBy" not in report

    @pytest.mark.asyncio
    async def test_admin_must_name_mr(self, client, admin, doctor):
        res = await client.post("/api/visit-reports", headers=admin["headers"], json={
            "doctor": doctor["id"], "visitDetails": {"visitDate": "2025-01-15"},
        })
        assert res.status_code == 400
        assert res.json()["message"] == "MR is required"

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, client, mr):
        res = await client.post("/api/visit-reports", headers=mr["headers"], json={
            "doctor": "missing", "visitDetails": {"visitDate": "2025-01-15"},
        })
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_activity_logged_from_report(self, client, mr, doctor, product):
        report = await _create_report(client, mr["headers"], doctor, product)
        assert report["orders"][0]["totalAmount"] == 102.0

        rows = await db.product_activity_logs.find({"visit_report": report["id"]}, {"_id": 0}).to_list(10)
        types = sorted(r["activity_type"] for r in rows)
        assert types == ["Order Placed", "Sample Given"]
        assert all(r["mr"] == mr["user"]["id"] for r in rows)


class TestScoping:

    @pytest.mark.asyncio
    async def test_list_scoped_even_with_mr_filter(self, client, admin, mr, other_mr, doctor):
        await _create_report(client, mr["headers"], doctor)
        await _create_report(client, admin["headers"], doctor, mr=other_mr["user"]["id"])

        res = await client.get(f"/api/visit-reports?mr={other_mr['user']['id']}", headers=mr["headers"])
        assert res.status_code == 200
        reports = res.json()["data"]["visitReports"]
        assert len(reports) == 1
        assert reports[0]["mr"] == mr["user"]["id"]

    @pytest.mark.asyncio
    async def test_admin_filters_by_mr(self, client, admin, mr, other_mr, doctor):
        await _create_report(client, mr["headers"], doctor)
        await _create_report(client, admin["headers"], doctor, mr=other_mr["user"]["id"])

        res = await client.get(f"/api/visit-reports?mr={other_mr['user']['id']}", headers=admin["headers"])
        data = res.json()["data"]
        assert data["pagination"]["totalItems"] == 1
        assert data["visitReports"][0]["mr"] == other_mr["user"]["id"]

    @pytest.mark.asyncio
    async def test_read_other_mr_report_forbidden(self, client, admin, mr, other_mr, doctor):
        report = await _create_report(client, admin["headers"], doctor, mr=other_mr["user"]["id"])
        res = await client.get(f"/api/visit-reports/{report['id']}", headers=mr["headers"])
        assert res.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_report(self, client, admin):
        res = await client.get("/api/visit-reports/nope", headers=admin["headers"])
        assert res.status_code == 404

    @pytest.mark.asyncio
    async def test_manager_denied(self, client, manager):
        res = await client.get("/api/visit-reports", headers=manager["headers"])
        assert res.status_code == 403


class TestStates:

    @pytest.mark.asyncio
    async def test_mr_submits_own_draft(self, client, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        res = await client.put(f"/api/visit-reports/{report['id']}", headers=mr["headers"], json={"status": "Submitted"})
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "Submitted"

    @pytest.mark.asyncio
    async def test_mr_cannot_edit_approved(self, client, admin, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        await client.post(f"/api/visit-reports/{report['id']}/approve", headers=admin["headers"])

        res = await client.put(f"/api/visit-reports/{report['id']}", headers=mr["headers"], json={
            "interaction": {"notes": "changed"},
        })
        assert res.status_code == 400

        res = await client.delete(f"/api/visit-reports/{report['id']}", headers=mr["headers"])
        assert res.status_code == 400

        res = await client.put(f"/api/visit-reports/{report['id']}", headers=admin["headers"], json={
            "interaction": {"notes": "admin fix"},
        })
        assert res.status_code == 200
        assert res.json()["data"]["interaction"]["notes"] == "admin fix"

    @pytest.mark.asyncio
    async def test_admin_update_to_terminal_stamps(self, client, admin, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        res = await client.put(f"/api/visit-reports/{report['id']}", headers=admin["headers"], json={"status": "Approved"})
        data = res.json()["data"]
        assert data["status"] == "Approved"
        assert data["approvedBy"] == admin["user"]["id"]
        assert data["approvedAt"]

    @pytest.mark.asyncio
    async def test_mr_deletes_own_draft(self, client, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        res = await client.delete(f"/api/visit-reports/{report['id']}", headers=mr["headers"])
        assert res.status_code == 200
        assert await db.visit_reports.count_documents({"id": report["id"]}) == 0


class TestApproval:

    @pytest.mark.asyncio
    async def test_approve_once(self, client, admin, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)

        res = await client.post(f"/api/visit-reports/{report['id']}/approve", headers=admin["headers"])
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["status"] == "Approved"
        assert data["approvedBy"] == admin["user"]["id"]

        res = await client.post(f"/api/visit-reports/{report['id']}/approve", headers=admin["headers"])
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, client, admin, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        res = await client.post(
            f"/api/visit-reports/{report['id']}/reject",
            headers=admin["headers"],
            json={"reason": "Missing doctor feedback"},
        )
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["status"] == "Rejected"
        assert data["rejectionReason"] == "Missing doctor feedback"

    @pytest.mark.asyncio
    async def test_mr_cannot_approve(self, client, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        res = await client.post(f"/api/visit-reports/{report['id']}/approve", headers=mr["headers"])
        assert res.status_code == 403

    @pytest.mark.asyncio
    async def test_reopen_clears_decision(self, client, admin, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        await client.post(
            f"/api/visit-reports/{report['id']}/reject",
            headers=admin["headers"],
            json={"reason": "Incomplete"},
        )

        res = await client.put(f"/api/visit-reports/{report['id']}", headers=admin["headers"], json={"status": "Draft"})
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["status"] == "Draft"
        assert "approvedBy" not in data
        assert "approvedAt" not in data
        assert "rejectionReason" not in data


class TestPartialUpdate:

    @pytest.mark.asyncio
    async def test_visit_details_merged(self, client, mr, doctor):
        report = await _create_report(
            client, mr["headers"], doctor,
            visitDetails={"visitDate": "2025-01-15", "location": "Clinic A"},
        )

        res = await client.put(f"/api/visit-reports/{report['id']}", headers=mr["headers"], json={
            "visitDetails": {"nextVisitDate": "2025-02-01"},
        })
        assert res.status_code == 200, res.text
        details = res.json()["data"]["visitDetails"]
        assert details["nextVisitDate"] == "2025-02-01"
        assert details["visitDate"] == "2025-01-15"
        assert details["location"] == "Clinic A"

    @pytest.mark.asyncio
    async def test_interaction_merged(self, client, mr, doctor, product):
        report = await _create_report(client, mr["headers"], doctor, product)

        res = await client.put(f"/api/visit-reports/{report['id']}", headers=mr["headers"], json={
            "interaction": {"notes": "second"},
        })
        assert res.status_code == 200
        interaction = res.json()["data"]["interaction"]
        assert interaction["notes"] == "second"
        assert interaction["visitOutcome"] == "Positive"
        assert interaction["productsDiscussed"][0]["product"] == product["id"]

    @pytest.mark.asyncio
    async def test_invalid_outcome_rejected(self, client, mr, doctor):
        report = await _create_report(client, mr["headers"], doctor)
        res = await client.put(f"/api/visit-reports/{report['id']}", headers=mr["headers"], json={
            "interaction": {"visitOutcome": "Great"},
        })
        assert res.status_code == 400
