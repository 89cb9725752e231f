"""Tests for the HTTP API."""

import asyncio
import json
from uuid import UUID, uuid4

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from ugc_engine.api.envelope import app_error_handler, request_validation_handler
from ugc_engine.domain.enums import QualityStatus


def create_brief(client: TestClient, text: str, parse: bool = True) -> dict:
    response = client.post("/api/v1/briefs", json={"raw_input": text, "parse": parse})
    assert response.status_code == 201
    return response.json()["data"]


class TestEnvelope:
    def test_success_envelope(self, test_client: TestClient, brief_text: str) -> None:
        response = test_client.post("/api/v1/briefs", json={"raw_input": brief_text})

        body = response.json()
        assert body["error"] is None
        assert body["data"]["status"] == "draft"
        assert "timestamp" in body["meta"]

    def test_not_found(self, test_client: TestClient) -> None:
        missing = uuid4()

        response = test_client.get(f"/api/v1/generations/{missing}")

        assert response.status_code == 404
        body = response.json()
        assert body["data"] is None
        assert body["error"]["code"] == "NotFound"
        assert body["error"]["id"] == str(missing)

    def test_request_validation_is_400(self, test_client: TestClient) -> None:
        response = test_client.post("/api/v1/briefs", json={"raw_input": ""})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "ValidationError"
        assert "raw_input" in error["fields"]

    @pytest.mark.parametrize("handler", [app_error_handler, request_validation_handler])
    def test_mismatched_exception_renders_internal_error(self, handler) -> None:
        request = Request(
            {"type": "http", "method": "GET", "path": "/boom", "headers": [], "query_string": b""}
        )

        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            response = asyncio.run(handler(request, exc))

        assert response.status_code == 500
        assert json.loads(response.body)["error"]["code"] == "InternalError"


class TestBriefs:
    def test_create_parsed(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text)

        assert brief["status"] == "parsed"
        assert brief["parsed"]["hook"] == "Our bedtime story app helps kids fall asleep"

    def test_parse_and_duplicate(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text, parse=False)

        parsed = test_client.post(f"/api/v1/briefs/{brief['id']}/parse").json()["data"]
        copy = test_client.post(f"/api/v1/briefs/{brief['id']}/duplicate")

        assert parsed["status"] == "parsed"
        assert copy.status_code == 201
        assert copy.json()["data"]["status"] == "draft"
        assert len(test_client.get("/api/v1/briefs").json()["data"]) == 2

    def test_edit_returns_to_draft(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text)

        response = test_client.patch(
            f"/api/v1/briefs/{brief['id']}", json={"raw_input": "Calm stories for anxious kids."}
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["raw_input"] == "Calm stories for anxious kids."
        assert data["status"] == "draft"
        assert data["parsed"] is None

    def test_delete_referenced_brief_rejected(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text)
        test_client.post("/api/v1/generations", json={"brief_id": brief["id"], "target_count": 1})

        response = test_client.delete(f"/api/v1/briefs/{brief['id']}")

        assert response.status_code == 400


class TestGenerations:
    def test_start_generation(self, test_client: TestClient, brief_text: str, enqueue) -> None:
        brief = create_brief(test_client, brief_text)

        response = test_client.post(
            "/api/v1/generations", json={"brief_id": brief["id"], "target_count": 4}
        )

        assert response.status_code == 202
        batch = response.json()["data"]
        assert batch["status"] == "pending"
        assert len(batch["items"]) == 4
        assert {item["status"] for item in batch["items"]} == {"pending"}
        assert batch["progress"]["pending"] == 4
        assert enqueue.batch_ids == [UUID(batch["id"])]

    @pytest.mark.parametrize("count", [0, 11])
    def test_count_out_of_range(self, test_client: TestClient, brief_text: str, count: int) -> None:
        brief = create_brief(test_client, brief_text)

        response = test_client.post(
            "/api/v1/generations", json={"brief_id": brief["id"], "target_count": count}
        )

        assert response.status_code == 400
        assert response.json()["error"]["fields"] == {"target_count": f"got {count}"}

    def test_unparsed_brief_rejected(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text, parse=False)

        response = test_client.post(
            "/api/v1/generations", json={"brief_id": brief["id"], "target_count": 2}
        )

        assert response.status_code == 400

    def test_cancel(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text)
        batch = test_client.post(
            "/api/v1/generations", json={"brief_id": brief["id"], "target_count": 2}
        ).json()["data"]

        response = test_client.post(f"/api/v1/generations/{batch['id']}/cancel")

        data = response.json()["data"]
        assert data["cancelled_at"] is not None
        assert {item["error_message"] for item in data["items"]} == {"Cancelled"}

    def test_list_by_brief(self, test_client: TestClient, brief_text: str) -> None:
        brief = create_brief(test_client, brief_text)
        test_client.post("/api/v1/generations", json={"brief_id": brief["id"], "target_count": 1})

        listed = test_client.get("/api/v1/generations", params={"brief_id": brief["id"]})
        nested = test_client.get(f"/api/v1/briefs/{brief['id']}/generations")

        assert len(listed.json()["data"]) == 1
        assert listed.json()["data"] == nested.json()["data"]


class TestVideos:
    def test_review_iterate_and_costs(self, test_client: TestClient, service, parsed_brief) -> None:
        batch = service.start_batch(parsed_brief.id, 1, enqueue=False)
        finished = asyncio.run(service.run_batch(batch.id))
        item_id = finished.items[0].id

        review = test_client.patch(
            f"/api/v1/videos/{item_id}/review",
            json={"quality_status": QualityStatus.APPROVED.value, "note": "winner"},
        )
        iterate = test_client.post(
            f"/api/v1/videos/{item_id}/iterate",
            json={"target_count": 2, "variation_intent": "shorter hook"},
        )
        costs = test_client.get(f"/api/v1/videos/{item_id}/costs")
        lineage = test_client.get(f"/api/v1/generations/{batch.id}/lineage")

        assert review.json()["data"]["quality_status"] == "approved"
        assert iterate.status_code == 202
        child = iterate.json()["data"]
        assert child["parent_id"] == str(batch.id)
        assert child["source_item_id"] == str(item_id)
        assert float(child["total_cost"]) == 0
        assert set(costs.json()["data"]["by_category"]) == {
            "script",
            "avatar",
            "composition",
            "storage",
        }
        assert [b["id"] for b in lineage.json()["data"]["children"]] == [child["id"]]

    def test_iterate_unreviewed_rejected(self, test_client: TestClient, service, parsed_brief) -> None:
        batch = service.start_batch(parsed_brief.id, 1, enqueue=False)

        response = test_client.post(
            f"/api/v1/videos/{batch.items[0].id}/iterate", json={"target_count": 2}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ValidationError"

    def test_cost_stats(self, test_client: TestClient) -> None:
        response = test_client.get("/api/v1/costs/stats")

        data = response.json()["data"]
        assert float(data["all_time"]) == 0
        assert data["entry_count"] == 0

    def test_list_filters(self, test_client: TestClient, service, parsed_brief) -> None:
        batch = service.start_batch(parsed_brief.id, 2, enqueue=False)
        finished = asyncio.run(service.run_batch(batch.id))
        service.review_item(finished.items[0].id, QualityStatus.APPROVED)
        service.start_batch(parsed_brief.id, 1, enqueue=False)

        approved = test_client.get("/api/v1/videos", params={"quality_status": "approved"})
        completed = test_client.get("/api/v1/videos", params={"status": "completed"})
        by_generation = test_client.get(
            "/api/v1/videos", params={"generation_id": str(batch.id), "limit": 1}
        )
        by_brief = test_client.get("/api/v1/videos", params={"brief_id": str(parsed_brief.id)})

        assert [v["id"] for v in approved.json()["data"]["items"]] == [str(finished.items[0].id)]
        assert completed.json()["data"]["total"] == 2
        page = by_generation.json()["data"]
        assert len(page["items"]) == 1
        assert page["total"] == 2
        assert page["limit"] == 1
        assert by_brief.json()["data"]["total"] == 3

    def test_delete_keeps_generation_cost(self, test_client: TestClient, service, parsed_brief) -> None:
        batch = service.start_batch(parsed_brief.id, 2, enqueue=False)
        finished = asyncio.run(service.run_batch(batch.id))
        item_id = finished.items[0].id

        response = test_client.delete(f"/api/v1/videos/{item_id}")

        assert response.json()["data"] == {"id": str(item_id), "deleted": True}
        assert test_client.get(f"/api/v1/videos/{item_id}").status_code == 404
        generation = test_client.get(f"/api/v1/generations/{batch.id}").json()["data"]
        assert len(generation["items"]) == 1
        assert float(generation["total_cost"]) == float(finished.total_cost)

    def test_delete_running_video_rejected(self, test_client: TestClient, service, parsed_brief) -> None:
        batch = service.start_batch(parsed_brief.id, 1, enqueue=False)

        response = test_client.delete(f"/api/v1/videos/{batch.items[0].id}")

        assert response.status_code == 400
        assert response.json()["error"]["fields"] == {"status": "pending"}
