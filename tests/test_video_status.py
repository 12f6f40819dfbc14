import pytest

from video_status import (
    COMPLETED,
    FAILED,
    LIFECYCLE_STATES,
    PENDING,
    PROCESSING,
    is_terminal,
    normalize_status,
    progress_for_status,
)


@pytest.mark.parametrize(
    "upstream, expected",
    [
        ("queued", PENDING),
        ("in_progress", PROCESSING),
        ("processing", PROCESSING),
        ("succeeded", COMPLETED),
        ("completed", COMPLETED),
        ("failed", FAILED),
        ("cancelled", FAILED),
    ],
)
def test_known_statuses(upstream, expected):
    assert normalize_status(upstream) == expected


@pytest.mark.parametrize("upstream", ["QUEUED", "Succeeded", "done", "", " queued", None, 3, {"status": "failed"}])
def test_unknown_statuses_fall_back_to_pending(upstream):
    assert normalize_status(upstream) == PENDING


def test_output_is_always_a_lifecycle_state():
    for token in ["queued", "processing", "weird", None, "cancelled"]:
        assert normalize_status(token) in LIFECYCLE_STATES


@pytest.mark.parametrize(
    "upstream, expected",
    [
        ("queued", 0),
        ("in_progress", 50),
        ("processing", 50),
        ("succeeded", 100),
        ("completed", 100),
        ("failed", 0),
        ("cancelled", 0),
        ("mystery", 0),
        (None, 0),
    ],
)
def test_progress_heuristic(upstream, expected):
    assert progress_for_status(upstream) == expected


def test_terminal_states():
    assert is_terminal(COMPLETED)
    assert is_terminal(FAILED)
    assert not is_terminal(PENDING)
    assert not is_terminal(PROCESSING)
