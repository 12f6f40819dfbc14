"""Request, record and progress shapes exchanged with the browser."""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from video_errors import ValidationError
from video_status import COMPLETED, FAILED, PENDING, normalize_status

DEFAULT_DURATION = 10
DEFAULT_RESOLUTION = "1080p"
DEFAULT_STYLE = "realistic"
DEFAULT_ASPECT_RATIO = "16:9"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_timestamp(value: Any) -> str:
    """Normalise an upstream timestamp (ISO string or epoch seconds) to ISO-8601."""
    if value is None or value == "":
        return utc_now()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    return str(value)


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class VideoGenerationRequest:
    prompt: str
    duration: int = DEFAULT_DURATION
    resolution: str = DEFAULT_RESOLUTION
    style: str = DEFAULT_STYLE
    aspect_ratio: str = DEFAULT_ASPECT_RATIO

    @classmethod
    def from_payload(cls, payload: Any) -> "VideoGenerationRequest":
        """Validate a JSON body and fill in defaults.

        Only the prompt and the duration are checked. Resolution and aspect
        ratio values outside the known sets are kept as-is; the size table
        falls back for them.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        prompt = payload.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required and must be a non-empty string")

        duration = payload.get("duration")
        if duration is None:
            duration = DEFAULT_DURATION
        elif isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise ValidationError("Duration must be a positive integer number of seconds")

        aspect_ratio = payload.get("aspectRatio") or payload.get("aspect_ratio")
        return cls(
            prompt=prompt.strip(),
            duration=duration,
            resolution=payload.get("resolution") or DEFAULT_RESOLUTION,
            style=payload.get("style") or DEFAULT_STYLE,
            aspect_ratio=aspect_ratio or DEFAULT_ASPECT_RATIO,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt": self.prompt,
            "duration": self.duration,
            "resolution": self.resolution,
            "style": self.style,
            "aspectRatio": self.aspect_ratio,
        }


@dataclass(frozen=True)
class VideoRecord:
    id: str
    status: str = PENDING
    prompt: str = ""
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None
    resolution: Optional[str] = None
    style: Optional[str] = None
    aspect_ratio: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    error: Optional[str] = None

    def __post_init__(self):
        # URLs belong to finished videos, diagnostics to failed ones.
        if self.status != COMPLETED:
            object.__setattr__(self, "video_url", None)
            object.__setattr__(self, "thumbnail_url", None)
        if self.status != FAILED:
            object.__setattr__(self, "error", None)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "status": self.status,
            "prompt": self.prompt,
            "videoUrl": self.video_url,
            "thumbnailUrl": self.thumbnail_url,
            "duration": self.duration,
            "resolution": self.resolution,
            "style": self.style,
            "aspectRatio": self.aspect_ratio,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "error": self.error,
        })


@dataclass(frozen=True)
class GenerationProgress:
    id: str
    progress: int
    status: str
    current_step: str = ""
    estimated_time_remaining: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "progress": self.progress,
            "status": self.status,
            "currentStep": self.current_step,
            "estimatedTimeRemaining": self.estimated_time_remaining,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationProgress":
        """Parse the JSON produced by :meth:`to_dict`."""
        progress = data.get("progress") or 0
        remaining = data.get("estimatedTimeRemaining")
        return cls(
            id=str(data.get("id", "")),
            progress=max(0, min(100, int(progress))),
            status=normalize_status(data.get("status")),
            current_step=data.get("currentStep") or "",
            estimated_time_remaining=remaining,
        )
