import pytest

from video_errors import ValidationError
from video_models import GenerationProgress, VideoGenerationRequest, VideoRecord, to_timestamp


def test_request_defaults_and_trimming():
    request = VideoGenerationRequest.from_payload({"prompt": "  a red kite over dunes  "})

    assert request.prompt == "a red kite over dunes"
    assert request.duration == 10
    assert request.resolution == "1080p"
    assert request.style == "realistic"
    assert request.aspect_ratio == "16:9"


def test_request_keeps_supplied_values():
    request = VideoGenerationRequest.from_payload({
        "prompt": "x",
        "duration": 4,
        "resolution": "720p",
        "style": "animated",
        "aspectRatio": "9:16",
    })

    assert request.to_dict() == {
        "prompt": "x",
        "duration": 4,
        "resolution": "720p",
        "style": "animated",
        "aspectRatio": "9:16",
    }


def test_request_accepts_snake_case_aspect_ratio():
    assert VideoGenerationRequest.from_payload({"prompt": "x", "aspect_ratio": "1:1"}).aspect_ratio == "1:1"


def test_unknown_resolution_is_left_for_the_size_table():
    assert VideoGenerationRequest.from_payload({"prompt": "x", "resolution": "8k"}).resolution == "8k"


@pytest.mark.parametrize("payload", [None, [], "prompt", {}, {"prompt": ""}, {"prompt": "   \n\t"}, {"prompt": 12}])
def test_request_rejects_missing_or_blank_prompt(payload):
    with pytest.raises(ValidationError):
        VideoGenerationRequest.from_payload(payload)


@pytest.mark.parametrize("duration", [0, -5, "10", 2.5, True])
def test_request_rejects_bad_duration(duration):
    with pytest.raises(ValidationError) as excinfo:
        VideoGenerationRequest.from_payload({"prompt": "x", "duration": duration})
    assert excinfo.value.status_code == 400


def test_request_is_immutable():
    request = VideoGenerationRequest.from_payload({"prompt": "x"})
    with pytest.raises(AttributeError):
        request.prompt = "y"


def test_record_drops_urls_until_completed():
    record = VideoRecord(id="v1", status="processing", video_url="https://cdn/v.mp4", thumbnail_url="https://cdn/t.jpg")

    assert record.video_url is None
    assert record.thumbnail_url is None
    assert "videoUrl" not in record.to_dict()


def test_record_keeps_error_only_when_failed():
    assert VideoRecord(id="v1", status="pending", error="boom").error is None
    assert VideoRecord(id="v1", status="failed", error="boom").error == "boom"


def test_record_serialises_camel_case():
    record = VideoRecord(
        id="v1",
        status="completed",
        prompt="p",
        video_url="https://cdn/v.mp4",
        aspect_ratio="9:16",
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-01T00:01:00+00:00",
    )

    data = record.to_dict()
    assert data["videoUrl"] == "https://cdn/v.mp4"
    assert data["aspectRatio"] == "9:16"
    assert data["createdAt"] == "2024-01-01T00:00:00+00:00"
    assert "error" not in data


def test_progress_from_dict_clamps_and_normalises():
    progress = GenerationProgress.from_dict({"id": "v1", "progress": 140, "status": "bogus", "currentStep": "x"})

    assert progress.progress == 100
    assert progress.status == "pending"
    assert progress.current_step == "x"


def test_progress_round_trip_through_json_shape():
    progress = GenerationProgress(id="v1", progress=50, status="processing", current_step="in_progress")
    assert GenerationProgress.from_dict(progress.to_dict()) == progress


def test_epoch_timestamps_become_iso():
    assert to_timestamp(1700000000) == "2023-11-14T22:13:20+00:00"
    assert to_timestamp("2024-05-01T10:00:00Z") == "2024-05-01T10:00:00Z"
    assert to_timestamp(None)
