import logging

from app import create_app
from fakes import StubVideoClient
from settings import Settings


def test_index_page(http):
    response = http.get("/")

    assert response.status_code == 200
    assert b"Sora Video Generator" in response.data


class TestGenerate:
    def test_starts_generation(self, http, stub_client):
        response = http.post("/generate", json={"prompt": " a lighthouse in a storm ", "aspectRatio": "9:16"})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["message"] == "Video generation started successfully"
        assert body["data"]["id"] == "vid_new"
        assert body["data"]["status"] == "pending"
        assert body["data"]["prompt"] == "a lighthouse in a storm"
        assert body["data"]["aspectRatio"] == "9:16"
        assert body["data"]["duration"] == 10
        request, size = stub_client.created[0]
        assert size == "1080x1920"

    def test_blank_prompt_is_rejected_without_upstream_call(self, http, stub_client):
        response = http.post("/generate", json={"prompt": "   "})

        assert response.status_code == 400
        assert response.get_json() == {
            "success": False,
            "error": "Prompt is required and must be a non-empty string",
        }
        assert stub_client.created == []

    def test_missing_body(self, http, stub_client):
        response = http.post("/generate")

        assert response.status_code == 400
        assert response.get_json()["success"] is False
        assert stub_client.created == []

    def test_missing_credential(self):
        client = StubVideoClient(api_key="")
        http = create_app(Settings(), client=client).test_client()

        response = http.post("/generate", json={"prompt": "a lighthouse"})

        assert response.status_code == 500
        assert "not configured" in response.get_json()["error"]
        assert client.created == []


class TestQuery:
    def test_without_id_returns_empty_list(self, http):
        response = http.get("/generate")

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["data"] == []
        assert body["message"]

    def test_with_id(self, http):
        response = http.get("/generate?id=vid_done")

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "completed"
        assert data["videoUrl"] == "https://cdn.test/vid_done.mp4"
        assert data["prompt"] == "a dog"

    def test_unknown_id(self, http):
        response = http.get("/generate?id=nope")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "Video not found"}

    def test_missing_credential(self):
        http = create_app(Settings(), client=StubVideoClient(api_key="")).test_client()

        response = http.get("/generate")

        assert response.status_code == 500
        assert response.get_json()["success"] is False


class TestProgress:
    def test_requires_id(self, http):
        response = http.get("/progress")

        assert response.status_code == 400
        assert response.get_json()["error"] == "Video ID is required"

    def test_running_video(self, http):
        response = http.get("/progress?id=vid_running")

        assert response.status_code == 200
        assert response.get_json()["data"] == {
            "id": "vid_running",
            "progress": 42,
            "status": "processing",
            "currentStep": "Rendering frames",
            "estimatedTimeRemaining": 12.5,
        }

    def test_queued_video_uses_status_heuristic(self, http):
        data = http.get("/progress?id=vid_queued").get_json()["data"]

        assert data["progress"] == 0
        assert data["status"] == "pending"
        assert data["currentStep"] == "queued"

    def test_unknown_id(self, http):
        assert http.get("/progress?id=nope").status_code == 404

    def test_unexpected_errors_become_envelopes(self, http, stub_client):
        stub_client.videos["broken"] = RuntimeError("kaboom")

        response = http.get("/progress?id=broken")

        assert response.status_code == 500
        assert response.get_json() == {"success": False, "error": "kaboom"}

    def test_wrong_method_keeps_http_error(self, http):
        assert http.put("/progress?id=vid_running").status_code == 405


class TestDownload:
    def test_requires_id(self, http):
        assert http.get("/download").status_code == 400

    def test_redirects_to_asset(self, http):
        response = http.get("/download?id=vid_done")

        assert response.status_code == 302
        assert response.headers["Location"] == "https://cdn.test/vid_done.mp4"

    def test_not_ready(self, http):
        response = http.get("/download?id=vid_running")

        assert response.status_code == 500
        assert response.get_json()["error"] == "Video is not ready for download. Current status: in_progress"

    def test_failed_video_is_not_ready(self, http):
        assert http.get("/download?id=vid_failed").status_code == 500

    def test_completed_without_url(self, http):
        response = http.get("/download?id=vid_no_url")

        assert response.status_code == 500
        assert response.get_json()["error"] == "Video URL not available"

    def test_unknown_id(self, http):
        assert http.get("/download?id=nope").status_code == 404


def test_missing_credential_is_logged_at_startup(caplog):
    with caplog.at_level(logging.WARNING, logger="app"):
        create_app(Settings(), client=StubVideoClient(api_key=""))

    assert "STUB_API_KEY" in caplog.text
