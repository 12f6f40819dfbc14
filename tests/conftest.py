import pytest

from app import create_app
from fakes import StubVideoClient
from settings import Settings

VIDEOS = {
    "vid_queued": {"id": "vid_queued", "status": "queued", "prompt": "a cat"},
    "vid_running": {
        "id": "vid_running",
        "status": "in_progress",
        "progress": 42,
        "current_step": "Rendering frames",
        "estimated_time_remaining": 12.5,
    },
    "vid_done": {
        "id": "vid_done",
        "status": "succeeded",
        "prompt": "a dog",
        "url": "https://cdn.test/vid_done.mp4",
        "duration": 10,
        "aspect_ratio": "16:9",
    },
    "vid_no_url": {"id": "vid_no_url", "status": "completed"},
    "vid_failed": {"id": "vid_failed", "status": "failed", "error": {"message": "content policy"}},
}


@pytest.fixture
def stub_client():
    return StubVideoClient(videos=VIDEOS)


@pytest.fixture
def app(stub_client):
    return create_app(Settings(), client=stub_client)


@pytest.fixture
def http(app):
    return app.test_client()
