"""
Tests — requirements catalog and traceability matrix (RTM).
"""

from qa_hub.services import traceability


def _create_case(client, requirements, **overrides):
    payload = {
        "title": "Encrypt data at rest", "industry": "Healthcare",
        "test_type": "Security", "priority": "Critical",
        "requirements": requirements,
    }
    payload.update(overrides)
    res = client.post("/api/test-cases", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["test_case_id"]


class TestMatrix:
    def test_every_requirement_appears(self, client, requirements):
        _create_case(client, ["REQ-0001", "REQ-0002"])
        _create_case(client, ["REQ-0001"])

        matrix = client.get("/api/rtm").get_json()["data"]
        assert [row["requirement_id"] for row in matrix] == requirements
        by_id = {row["requirement_id"]: row for row in matrix}
        assert by_id["REQ-0001"]["covering_test_case_ids"] == ["TC-0001", "TC-0002"]
        assert by_id["REQ-0001"]["coverage_count"] == 2
        assert by_id["REQ-0002"]["coverage_count"] == 1

    def test_uncovered_requirement_has_zero_coverage(self, client, requirements):
        _create_case(client, ["REQ-0001"])
        row = next(r for r in traceability.build_matrix() if r["requirement_id"] == "REQ-0004")
        assert row["coverage_count"] == 0
        assert row["covering_test_case_ids"] == []

    def test_empty_store(self):
        assert traceability.build_matrix() == []
        assert traceability.coverage_summary()["coverage_pct"] == 0

    def test_deleted_case_leaves_coverage(self, client, requirements):
        tc_id = _create_case(client, ["REQ-0003"])
        client.delete(f"/api/test-cases/{tc_id}")
        row = next(r for r in traceability.build_matrix() if r["requirement_id"] == "REQ-0003")
        assert row["coverage_count"] == 0

    def test_gaps_and_summary(self, client, requirements):
        _create_case(client, ["REQ-0001", "REQ-0002"])
        data = client.get("/api/rtm/gaps").get_json()["data"]
        assert [g["requirement_id"] for g in data["gaps"]] == [
            "REQ-0003", "REQ-0004", "REQ-0005", "REQ-0006",
        ]
        assert data["summary"] == {
            "total_requirements": 6,
            "covered": 2,
            "uncovered": 4,
            "coverage_pct": 33.3,
        }


class TestRequirements:
    def test_list_ordered_by_id(self, client, requirements):
        data = client.get("/api/requirements").get_json()["data"]
        assert [r["requirement_id"] for r in data] == requirements

    def test_list_filter_category(self, client, requirements):
        data = client.get("/api/requirements?category=Security").get_json()["data"]
        assert data
        assert all(r["category"] == "Security" for r in data)

    def test_detail_includes_covering_cases(self, client, requirements):
        tc_id = _create_case(client, ["REQ-0005"])
        data = client.get("/api/requirements/REQ-0005").get_json()["data"]
        assert data["covering_test_case_ids"] == [tc_id]
        assert data["coverage_count"] == 1

    def test_detail_not_found(self, client):
        assert client.get("/api/requirements/REQ-404").status_code == 404

    def test_create_generates_id(self, client, requirements):
        res = client.post("/api/requirements", json={
            "title": "Audit log retention", "category": "Compliance", "priority": "High",
        })
        assert res.status_code == 201
        assert res.get_json()["data"]["requirement_id"] == "REQ-0007"

    def test_create_with_explicit_id(self, client):
        res = client.post("/api/requirements", json={
            "requirement_id": "REQ-PCI-01", "title": "Mask card numbers",
        })
        assert res.status_code == 201
        data = client.get("/api/requirements/REQ-PCI-01").get_json()["data"]
        assert data["status"] == "Active"

    def test_create_duplicate_id_conflicts(self, client, requirements):
        res = client.post("/api/requirements", json={
            "requirement_id": "REQ-0001", "title": "Duplicate",
        })
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_create_requires_title(self, client):
        res = client.post("/api/requirements", json={"category": "Security"})
        assert res.status_code == 400
        assert res.get_json()["details"]["missing"] == ["title"]

    def test_create_invalid_priority(self, client):
        res = client.post("/api/requirements", json={"title": "x", "priority": "P1"})
        assert res.status_code == 400

    def test_create_invalid_category(self, client):
        res = client.post("/api/requirements", json={"title": "x", "category": "Marketing"})
        assert res.status_code == 400
        assert "category" in res.get_json()["details"]

    def test_create_non_string_title(self, client):
        res = client.post("/api/requirements", json={"title": ["Login"]})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"title": "must be a string"}

    def test_generated_ids_sort_after_seeded(self, client, requirements):
        client.post("/api/requirements", json={"title": "Audit log retention"})
        listed = client.get("/api/requirements").get_json()["data"]
        assert [r["requirement_id"] for r in listed] == requirements + ["REQ-0007"]
        matrix = client.get("/api/rtm").get_json()["data"]
        assert [r["requirement_id"] for r in matrix][-1] == "REQ-0007"

    def test_explicit_numeric_id_moves_generated_ids_past_it(self, client, requirements):
        client.post("/api/requirements", json={"requirement_id": "REQ-0050", "title": "Imported"})
        res = client.post("/api/requirements", json={"title": "Next"})
        assert res.get_json()["data"]["requirement_id"] == "REQ-0051"
