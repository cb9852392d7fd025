"""
Tests — dashboard KPIs, active plans and recent defects.
"""

from qa_hub.services import dashboard_service


def _create_case(client, title="Place market order"):
    res = client.post("/api/test-cases", json={
        "title": title, "industry": "Brokerage", "test_type": "Functional", "priority": "High",
    })
    assert res.status_code == 201
    return res.get_json()["data"]["test_case_id"]


def _record(client, tc_id, status):
    res = client.post("/api/test-executions", json={
        "test_case_id": tc_id, "executed_by": "Alex Rodriguez", "status": status,
    })
    assert res.status_code == 201


def _create_defect(client, title="Quote delayed", status="Open"):
    res = client.post("/api/defects", json={
        "title": title, "description": "Quote refresh lags 5s", "severity": "Medium",
        "priority": "Medium", "reported_by": "QA", "status": status,
    })
    assert res.status_code == 201
    return res.get_json()["data"]["defect_id"]


class TestDashboardStats:
    def test_empty_store(self, client):
        res = client.get("/api/dashboard/stats")
        assert res.status_code == 200
        assert res.get_json()["data"] == {
            "totalTestCases": 0,
            "passedTests": 0,
            "activeDefects": 0,
            "testCoverage": 0,
        }

    def test_counts(self, client):
        tc1 = _create_case(client)
        _create_case(client, title="Cancel order")
        _create_case(client, title="Portfolio view")
        _record(client, tc1, "Passed")
        _record(client, tc1, "Failed")
        _create_defect(client)
        _create_defect(client, status="In Progress")
        _create_defect(client, status="Resolved")
        _create_defect(client, status="Closed")

        stats = dashboard_service.stats()
        assert stats["totalTestCases"] == 3
        assert stats["passedTests"] == 1
        assert stats["activeDefects"] == 2
        assert stats["testCoverage"] == 33.3


class TestDashboardLists:
    def test_recent_defects_newest_first_with_limit(self, client):
        for i in range(4):
            _create_defect(client, title=f"Defect {i}")
        data = client.get("/api/dashboard/recent-defects?limit=3").get_json()["data"]
        assert [d["title"] for d in data] == ["Defect 3", "Defect 2", "Defect 1"]

    def test_recent_defects_bad_limit_falls_back(self, client):
        _create_defect(client)
        res = client.get("/api/dashboard/recent-defects?limit=lots")
        assert res.status_code == 200
        assert len(res.get_json()["data"]) == 1

    def test_active_plans(self, client):
        for status in ("Planning", "In Progress", "Completed"):
            res = client.post("/api/test-plans", json={
                "name": f"{status} plan", "industry": "Brokerage", "status": status,
            })
            assert res.status_code == 201
        data = client.get("/api/dashboard/test-plans").get_json()["data"]
        assert [p["name"] for p in data] == ["Completed plan", "In Progress plan", "Planning plan"]
