"""
Fieldforce - Targets, performance logs, product activity and admin reports
"""

import pytest


class TestTargets:

    @pytest.mark.asyncio
    async def test_admin_creates_mr_reads_own(self, client, admin, mr, other_mr):
        res = await client.post("/api/mr-targets", headers=admin["headers"], json={
            "mr": mr["user"]["id"], "month": 1, "year": 2025, "target_visits": 80, "target_sales": 50000,
        })
        assert res.status_code == 201
        assert res.json()["data"]["period"] == "Jan 2025"

        await client.post("/api/mr-targets", headers=admin["headers"], json={
            "mr": other_mr["user"]["id"], "month": 1, "year": 2025,
        })

        res = await client.get(f"/api/mr-targets?mr={other_mr['user']['id']}", headers=mr["headers"])
        data = res.json()["data"]
        assert data["count"] == 1
        assert data["targets"][0]["mr"] == mr["user"]["id"]
        assert data["targets"][0]["mrInfo"]["name"] == "First MR"

    @pytest.mark.asyncio
    async def test_duplicate_period(self, client, admin, mr):
        body = {"mr": mr["user"]["id"], "month": 2, "year": 2025}
        await client.post("/api/mr-targets", headers=admin["headers"], json=body)
        res = await client.post("/api/mr-targets", headers=admin["headers"], json=body)
        assert res.status_code == 400
        assert res.json()["message"] == "Target already exists for this MR and period"

    @pytest.mark.asyncio
    async def test_invalid_month(self, client, admin, mr):
        res = await client.post("/api/mr-targets", headers=admin["headers"], json={
            "mr": mr["user"]["id"], "month": 13, "year": 2025,
        })
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_mr_cannot_write(self, client, mr):
        res = await client.post("/api/mr-targets", headers=mr["headers"], json={
            "mr": mr["user"]["id"], "month": 1, "year": 2025,
        })
        assert res.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_denied(self, client, manager):
        res = await client.get("/api/mr-targets", headers=manager["headers"])
        assert res.status_code == 403


class TestPerformance:

    @pytest.mark.asyncio
    async def test_averages_and_verify(self, client, admin, mr):
        res = await client.post("/api/mr-performance", headers=admin["headers"], json={
            "mr": mr["user"]["id"], "month": 3, "year": 2025,
            "total_visits": 44, "working_days": 22, "total_orders": 4, "total_sale_amount": 1000,
        })
        assert res.status_code == 201
        log = res.json()["data"]
        assert log["average_visits_per_day"] == 2.0
        assert log["average_order_value"] == 250.0

        res = await client.put(f"/api/mr-performance/{log['id']}", headers=admin["headers"], json={"total_orders": 5})
        assert res.json()["data"]["average_order_value"] == 200.0

        res = await client.post(f"/api/mr-performance/{log['id']}/verify", headers=admin["headers"])
        data = res.json()["data"]
        assert data["status"] == "Verified"
        assert data["verified_by"] == admin["user"]["id"]

    @pytest.mark.asyncio
    async def test_zero_working_days(self, client, admin, mr):
        res = await client.post("/api/mr-performance", headers=admin["headers"], json={
            "mr": mr["user"]["id"], "month": 3, "year": 2025, "total_visits": 10,
        })
        assert res.json()["data"]["average_visits_per_day"] == 0

    @pytest.mark.asyncio
    async def test_mr_reads_own_only(self, client, admin, mr, other_mr):
        res = await client.post("/api/mr-performance", headers=admin["headers"], json={
            "mr": other_mr["user"]["id"], "month": 3, "year": 2025,
        })
        log = res.json()["data"]

        res = await client.get(f"/api/mr-performance/{log['id']}", headers=mr["headers"])
        assert res.status_code == 403
        res = await client.get("/api/mr-performance", headers=mr["headers"])
        assert res.json()["data"]["count"] == 0

    @pytest.mark.asyncio
    async def test_mr_cannot_verify(self, client, admin, mr):
        res = await client.post("/api/mr-performance", headers=admin["headers"], json={
            "mr": mr["user"]["id"], "month": 4, "year": 2025,
        })
        log = res.json()["data"]
        res = await client.post(f"/api/mr-performance/{log['id']}/verify", headers=mr["headers"])
        assert res.status_code == 403


class TestProductActivity:

    @pytest.mark.asyncio
    async def test_log_and_summary(self, client, mr, other_mr, doctor, product):
        res = await client.post("/api/product-activity", headers=mr["headers"], json={
            "product": product["id"], "doctor": doctor["id"], "activity_type": "Sample Given",
            "quantity": 6, "date": "2025-05-10", "mr": other_mr["user"]["id"],
        })
        assert res.status_code == 201
        assert res.json()["data"]["mr"] == mr["user"]["id"]

        await client.post("/api/product-activity", headers=mr["headers"], json={
            "product": product["id"], "doctor": doctor["id"], "date": "2025-05-20",
        })

        res = await client.get("/api/product-activity/summary?month=5&year=2025", headers=mr["headers"])
        rows = res.json()["data"]["products"]
        assert len(rows) == 1
        assert rows[0]["totalActivities"] == 2
        assert rows[0]["totalQuantity"] == 6
        assert rows[0]["uniqueDoctors"] == 1
        assert rows[0]["productInfo"]["productId"] == "PROD0001"

    @pytest.mark.asyncio
    async def test_unknown_product(self, client, mr):
        res = await client.post("/api/product-activity", headers=mr["headers"], json={"product": "ghost"})
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_must_name_mr(self, client, admin, mr, product):
        res = await client.post("/api/product-activity", headers=admin["headers"], json={"product": product["id"]})
        assert res.status_code == 400
        assert res.json()["message"] == "MR is required"

        res = await client.post("/api/product-activity", headers=admin["headers"], json={
            "product": product["id"], "mr": mr["user"]["id"],
        })
        assert res.status_code == 201
        assert res.json()["data"]["mr"] == mr["user"]["id"]

    @pytest.mark.asyncio
    async def test_list_scoped(self, client, mr, other_mr, product):
        await client.post("/api/product-activity", headers=other_mr["headers"], json={"product": product["id"]})
        res = await client.get("/api/product-activity", headers=mr["headers"])
        assert res.json()["data"]["count"] == 0

    @pytest.mark.asyncio
    async def test_analytics_admin_only(self, client, admin, mr, product):
        await client.post("/api/product-activity", headers=mr["headers"], json={
            "product": product["id"], "activity_type": "Sample Given", "quantity": 3,
        })
        res = await client.get(f"/api/product-activity/analytics/product/{product['id']}", headers=mr["headers"])
        assert res.status_code == 403

        res = await client.get(f"/api/product-activity/analytics/product/{product['id']}", headers=admin["headers"])
        rows = res.json()["data"]
        assert rows == [{
            "activity_type": "Sample Given",
            "count": 1,
            "totalQuantity": 3,
            "uniqueDoctorsCount": 0,
            "uniqueMRsCount": 1,
        }]


class TestAdmin:

    @pytest.mark.asyncio
    async def test_dashboard(self, client, admin, mr, doctor, product):
        await client.post("/api/orders", headers=mr["headers"], json={
            "doctor": doctor["id"],
            "items": [{"product": product["id"], "quantity": 2, "unitPrice": 120}],
        })
        res = await client.get("/api/admin/dashboard", headers=admin["headers"])
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["kpis"]["totalMRs"] == 1
        assert data["kpis"]["totalDoctors"] == 1
        assert data["kpis"]["totalOrders"] == 1
        assert data["kpis"]["totalOrderValue"] == 240.0
        assert data["charts"]["productOrders"][0]["name"] == "Cardiotab 10"

    @pytest.mark.asyncio
    async def test_mr_performance_ranking(self, client, admin, mr, other_mr, doctor):
        await client.post("/api/visit-reports", headers=mr["headers"], json={
            "doctor": doctor["id"],
            "visitDetails": {"visitDate": "2025-01-15"},
            "interaction": {"visitOutcome": "Positive"},
        })
        res = await client.get("/api/admin/mr-performance", headers=admin["headers"])
        data = res.json()["data"]
        assert data["pagination"]["totalItems"] == 2
        top = data["mrPerformance"][0]
        assert top["id"] == mr["user"]["id"]
        assert top["visits"] == 1
        assert top["successRate"] == 100.0
        assert data["pagination"]["hasNext"] is False

    @pytest.mark.asyncio
    async def test_reports(self, client, admin, doctor, product):
        res = await client.get("/api/admin/reports?reportType=products", headers=admin["headers"])
        assert res.json()["data"]["products"][0]["name"] == "Cardiotab 10"

        res = await client.get("/api/admin/reports?reportType=bogus", headers=admin["headers"])
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_mr_denied(self, client, mr):
        res = await client.get("/api/admin/dashboard", headers=mr["headers"])
        assert res.status_code == 403


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "OK"
