"""
Scan, report and batch endpoints. Jobs go to a fake controller, so no
browser is launched; the database is the real (throwaway) one.
"""
from unittest.mock import AsyncMock, patch

import pytest

from app.features.scan.schemas.scan import IssueData
from app.features.scan.services.errors import QueueFull, ShutdownInProgress

ISSUES = [
    IssueData(rule_id="color-contrast", severity="serious", selector=".nav a", description="Low contrast"),
]


def register_website(client, url="https://example.com"):
    return client.post("/api/v1/websites", json={"url": url, "name": "Example"}).json()["data"]["id"]


@pytest.fixture
def completing_client(client, test_app):
    """Client whose controller completes every submitted scan immediately, with one color-contrast issue."""
    from app.features.scan.dependencies.scan import get_job_controller

    class CompletingController:
        async def submit(self, job):
            store = test_app.state.scan_store
            await store.record_completion(job.scan_id, ISSUES, 87, {"axe": [{"id": "color-contrast"}], "gigw": None})
            return job.scan_id

    test_app.dependency_overrides[get_job_controller] = CompletingController
    yield client
    test_app.dependency_overrides.pop(get_job_controller, None)


class TestCreateScan:

    def test_returns_202_with_queued_scan(self, scan_client, fake_controller):
        website_id = register_website(scan_client)

        response = scan_client.post("/api/v1/scan", json={"website_id": website_id})

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["status"] == "queued"
        job = fake_controller.submit.await_args.args[0]
        assert job.scan_id == data["scan_id"]
        assert job.target_url == "https://example.com"
        assert job.parent_scan_id is None

    def test_unknown_website(self, scan_client):
        response = scan_client.post("/api/v1/scan", json={"website_id": "nope"})
        assert response.status_code == 404

    def test_scan_status_is_readable(self, scan_client):
        website_id = register_website(scan_client)
        scan_id = scan_client.post("/api/v1/scan", json={"website_id": website_id}).json()["data"]["scan_id"]

        response = scan_client.get(f"/api/v1/scan/{scan_id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == scan_id
        assert data["status"] == "queued"
        assert data["score"] is None

    def test_unknown_scan(self, scan_client):
        assert scan_client.get("/api/v1/scan/missing").status_code == 404

    @pytest.mark.parametrize("error, error_type", [
        (QueueFull("queue full"), "queue_full"),
        (ShutdownInProgress("draining"), "server_shutdown"),
    ])
    def test_admission_refusal_is_503(self, scan_client, fake_controller, error, error_type):
        fake_controller.submit.side_effect = error
        website_id = register_website(scan_client)

        response = scan_client.post("/api/v1/scan", json={"website_id": website_id})

        assert response.status_code == 503
        assert response.json()["error_type"] == error_type


class TestScanReport:

    def test_report_not_ready(self, scan_client):
        website_id = register_website(scan_client)
        scan_id = scan_client.post("/api/v1/scan", json={"website_id": website_id}).json()["data"]["scan_id"]

        response = scan_client.get(f"/api/v1/scan/{scan_id}/report")

        assert response.status_code == 400
        assert response.json()["message"] == "Scan is not completed yet"

    def test_report_of_completed_scan(self, completing_client):
        website_id = register_website(completing_client)
        scan_id = completing_client.post("/api/v1/scan", json={"website_id": website_id}).json()["data"]["scan_id"]

        status = completing_client.get(f"/api/v1/scan/{scan_id}").json()["data"]
        assert status["status"] == "completed"
        assert status["score"] == 87

        response = completing_client.get(f"/api/v1/scan/{scan_id}/report")

        assert response.status_code == 200
        report = response.json()["data"]
        assert report["score"] == 87
        assert report["business_risk"]["level"] == "Low"
        assert report["business_risk"]["score"] == 15
        assert report["grouped_issues"][0]["rule_id"] == "color-contrast"
        assert report["grouped_issues"][0]["selectors"] == [".nav a"]
        assert report["sector_guidance"]["sector"] == "General"


class TestBatch:

    def test_batch_queues_one_child_per_sitemap_page(self, scan_client, fake_controller):
        website_id = register_website(scan_client, "https://example.gov.in")
        pages = ["https://example.gov.in/", "https://example.gov.in/about", "https://example.gov.in/contact"]

        with patch("app.features.scan.services.scan.scan.fetch_page_urls", new=AsyncMock(return_value=pages)):
            response = scan_client.post("/api/v1/batch", json={"website_id": website_id})

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["total_pages"] == 3
        jobs = [call.args[0] for call in fake_controller.submit.await_args_list]
        assert [job.target_url for job in jobs] == pages
        assert {job.parent_scan_id for job in jobs} == {data["scan_id"]}

        progress = scan_client.get(f"/api/v1/batch/{data['scan_id']}/progress").json()["data"]
        assert progress["total_pages"] == 3
        assert progress["completed_pages"] == 0
        assert progress["progress"] == 0
        assert sorted(page["page_url"] for page in progress["pages"]) == sorted(pages)
        assert all(page["status"] == "queued" for page in progress["pages"])

    def test_batch_progress_counts_completed_children(self, completing_client):
        website_id = register_website(completing_client)
        pages = ["https://example.com/a", "https://example.com/b"]

        with patch("app.features.scan.services.scan.scan.fetch_page_urls", new=AsyncMock(return_value=pages)):
            batch_id = completing_client.post("/api/v1/batch", json={"website_id": website_id}).json()["data"]["scan_id"]

        progress = completing_client.get(f"/api/v1/batch/{batch_id}/progress").json()["data"]

        assert progress["completed_pages"] == 2
        assert progress["progress"] == 100
        assert all(page["score"] == 87 for page in progress["pages"])

    def test_unknown_batch(self, scan_client):
        assert scan_client.get("/api/v1/batch/missing/progress").status_code == 404
