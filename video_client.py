"""Clients for the upstream video-generation services.

Two upstreams are supported behind one interface:

* ``SoraV2Client`` talks JSON REST to a ``/videos/generations`` endpoint.
* ``OpenAIVideoClient`` goes through the official ``openai`` SDK.

Both only differ in how a raw payload is fetched. Turning that payload into a
``VideoRecord`` or ``GenerationProgress`` happens once, in ``VideoClient``.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import openai
import requests
from openai import OpenAI

from settings import DEFAULT_API_BASE, OPENAI_BACKEND, SORA_V2_BACKEND, Settings
from video_errors import (
    ConfigurationError,
    MissingResourceError,
    NotFoundError,
    NotReadyError,
    UpstreamError,
)
from video_models import (
    GenerationProgress,
    VideoGenerationRequest,
    VideoRecord,
    to_timestamp,
)
from video_status import COMPLETED, normalize_status, progress_for_status

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "1920x1080"

SIZE_BY_RESOLUTION = {
    "720p": "1280x720",
    "1080p": "1920x1080",
    "4k": "3840x2160",
}

SIZE_BY_ASPECT_RATIO = {
    "16:9": {"720p": "1280x720", "1080p": "1920x1080", "4k": "3840x2160"},
    "9:16": {"720p": "720x1280", "1080p": "1080x1920", "4k": "2160x3840"},
    "1:1": {"720p": "720x720", "1080p": "1080x1080", "4k": "2160x2160"},
}

# Sizes accepted by the SDK's videos.create.
SDK_SIZES = ("1280x720", "720x1280", "1792x1024", "1024x1792")

URL_FIELDS = ("url", "video_url", "download_url")


def resolve_size(resolution: Optional[str], aspect_ratio: Optional[str]) -> str:
    """Pixel size for a resolution/aspect ratio pair.

    Unknown aspect ratios fall back to the resolution-only table, unknown
    resolutions to ``1920x1080``.
    """
    by_aspect = SIZE_BY_ASPECT_RATIO.get(aspect_ratio, {})
    return by_aspect.get(resolution) or SIZE_BY_RESOLUTION.get(resolution) or DEFAULT_SIZE


def fit_sdk_size(size: str) -> str:
    """Map an arbitrary WxH to the 720p SDK size with the same orientation."""
    if size in SDK_SIZES:
        return size
    w = h = None
    if isinstance(size, str) and "x" in size:
        try:
            parts = size.lower().split("x")
            w = int(parts[0])
            h = int(parts[1])
        except ValueError:
            w = h = None
    if w and h and h > w:
        return "720x1280"
    return "1280x720"


def bucket_seconds(duration: int) -> str:
    """Map arbitrary seconds to closest supported string among {'4','8','12'}."""
    allowed = [4, 8, 12]
    target = min(allowed, key=lambda x: abs(x - (duration or 4)))
    return str(target)


def extract_error_message(payload: Any, fallback: str) -> str:
    """Pull a message out of ``{"error": {"message": ...}}`` or ``{"message": ...}``."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if payload.get("message"):
            return str(payload["message"])
    return fallback


def _error_text(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, dict):
        return str(value.get("message") or value.get("code") or value)
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _video_url(payload: Dict[str, Any]) -> Optional[str]:
    for key in URL_FIELDS:
        url = payload.get(key)
        if isinstance(url, str) and url:
            return url
    return None


def record_from_payload(
    payload: Dict[str, Any],
    request: Optional[VideoGenerationRequest] = None,
) -> VideoRecord:
    """Shape an upstream video object into a ``VideoRecord``.

    On submit the caller's request is echoed back, since the create response
    does not repeat the generation parameters.
    """
    fields = dict(
        id=str(payload.get("id") or ""),
        status=normalize_status(payload.get("status")),
        video_url=_video_url(payload),
        thumbnail_url=payload.get("thumbnail_url"),
        created_at=to_timestamp(payload.get("created_at")),
        updated_at=to_timestamp(payload.get("updated_at")),
        error=_error_text(payload.get("error")),
    )
    if request is not None:
        fields.update(
            prompt=request.prompt,
            duration=request.duration,
            resolution=request.resolution,
            style=request.style,
            aspect_ratio=request.aspect_ratio,
        )
    else:
        fields.update(
            prompt=payload.get("prompt") or "",
            duration=_as_int(payload.get("duration") or payload.get("seconds")),
            resolution=payload.get("resolution"),
            style=payload.get("style"),
            aspect_ratio=payload.get("aspect_ratio"),
        )
    return VideoRecord(**fields)


def progress_from_payload(payload: Dict[str, Any], video_id: str) -> GenerationProgress:
    """Shape an upstream video object into a ``GenerationProgress``.

    Falls back to the coarse status heuristic when the upstream reports no
    percentage (or reports 0).
    """
    raw_status = payload.get("status")
    progress = _as_int(payload.get("progress")) or progress_for_status(raw_status)
    remaining = payload.get("estimated_time_remaining")
    if isinstance(remaining, bool) or not isinstance(remaining, (int, float)) or remaining < 0:
        remaining = None
    return GenerationProgress(
        id=str(payload.get("id") or video_id),
        progress=max(0, min(100, progress)),
        status=normalize_status(raw_status),
        current_step=str(payload.get("current_step") or raw_status or ""),
        estimated_time_remaining=remaining,
    )


class VideoClient:
    """Common operations over one upstream; subclasses fetch raw payloads."""

    name = "video"
    api_key_env = ""

    def __init__(self, api_key: str, api_base: str, model: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError(f"{self.name} API key is not configured ({self.api_key_env})")

    def _create(self, request: VideoGenerationRequest, size: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _retrieve(self, video_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    def submit(self, request: VideoGenerationRequest) -> VideoRecord:
        self.ensure_configured()
        size = resolve_size(request.resolution, request.aspect_ratio)
        logger.info(
            "Submitting video generation to %s: size=%s duration=%ss",
            self.name, size, request.duration,
        )
        payload = self._create(request, size)
        if not payload.get("id"):
            raise UpstreamError(None, "response did not include a video id")
        record = record_from_payload(payload, request)
        logger.info("Video %s created with status %s", record.id, record.status)
        return record

    def fetch_status(self, video_id: str) -> VideoRecord:
        self.ensure_configured()
        return record_from_payload(self._retrieve(video_id))

    def fetch_progress(self, video_id: str) -> GenerationProgress:
        self.ensure_configured()
        return progress_from_payload(self._retrieve(video_id), video_id)

    def resolve_download_url(self, video_id: str) -> str:
        self.ensure_configured()
        payload = self._retrieve(video_id)
        raw_status = payload.get("status")
        if normalize_status(raw_status) != COMPLETED:
            raise NotReadyError(raw_status)
        url = _video_url(payload)
        if not url:
            raise MissingResourceError()
        return url


class SoraV2Client(VideoClient):
    name = "SoraV2"
    api_key_env = "SORA_V2_API_KEY"

    def __init__(
        self,
        api_key: str,
        api_base: str = DEFAULT_API_BASE,
        model: str = "sora",
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(api_key, api_base, model, timeout)
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, lookup: bool = False, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_base}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise UpstreamError(None, str(exc)) from exc

        if not response.ok:
            if lookup and response.status_code == 404:
                raise NotFoundError()
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = extract_error_message(body, response.reason or "")
            logger.error("%s %s returned %s: %s", method, url, response.status_code, message)
            raise UpstreamError(response.status_code, message)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(response.status_code, "response was not JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamError(response.status_code, "response was not a JSON object")
        return data

    def _create(self, request: VideoGenerationRequest, size: str) -> Dict[str, Any]:
        body = {
            "model": self.model,
            "prompt": request.prompt,
            "size": size,
            "duration": request.duration,
            "n": 1,
        }
        data = self._request("POST", "/videos/generations", json=body)
        # Generations come back as {"data": [...]}, single objects as-is.
        items = data.get("data")
        if isinstance(items, list) and items and isinstance(items[0], dict):
            return items[0]
        return data

    def _retrieve(self, video_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/videos/generations/{quote(video_id, safe='')}", lookup=True)


class OpenAIVideoClient(VideoClient):
    name = "OpenAI"
    api_key_env = "OPENAI_API_KEY"

    def __init__(
        self,
        api_key: str,
        api_base: str = DEFAULT_API_BASE,
        model: str = "sora-2",
        timeout: Optional[float] = None,
        sdk: Optional[OpenAI] = None,
    ):
        super().__init__(api_key, api_base, model, timeout)
        self._sdk = sdk

    @property
    def sdk(self) -> OpenAI:
        if self._sdk is None:
            kwargs = {"api_key": self.api_key, "base_url": self.api_base}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._sdk = OpenAI(**kwargs)
        return self._sdk

    def _call(self, func, *args, lookup: bool = False, **kwargs) -> Dict[str, Any]:
        try:
            result = func(*args, **kwargs)
        except openai.NotFoundError as exc:
            if lookup:
                raise NotFoundError() from exc
            raise UpstreamError(exc.status_code, extract_error_message(exc.body, exc.message)) from exc
        except openai.APIStatusError as exc:
            message = extract_error_message(exc.body, exc.message)
            logger.error("OpenAI videos call returned %s: %s", exc.status_code, message)
            raise UpstreamError(exc.status_code, message) from exc
        except openai.APIConnectionError as exc:
            logger.error("OpenAI videos call failed: %s", exc)
            raise UpstreamError(None, str(exc)) from exc

        if isinstance(result, dict):
            return result
        if hasattr(result, "model_dump"):
            return result.model_dump()
        raise UpstreamError(None, f"unexpected response type {type(result).__name__}")

    def _create(self, request: VideoGenerationRequest, size: str) -> Dict[str, Any]:
        sdk_size = fit_sdk_size(size)
        seconds = bucket_seconds(request.duration)
        logger.debug("Calling SDK with: model=%s, seconds=%s, size=%s", self.model, seconds, sdk_size)
        return self._call(
            self.sdk.videos.create,
            model=self.model,
            prompt=request.prompt,
            seconds=seconds,
            size=sdk_size,
        )

    def _retrieve(self, video_id: str) -> Dict[str, Any]:
        return self._call(self.sdk.videos.retrieve, video_id, lookup=True)

    def resolve_download_url(self, video_id: str) -> str:
        # Video objects have no URL; bytes only come from videos.download_content.
        try:
            return super().resolve_download_url(video_id)
        except MissingResourceError as exc:
            raise MissingResourceError(
                "Video URL not available: the OpenAI videos API serves content only "
                "through videos.download_content, which cannot be redirected to"
            ) from exc


def build_client(settings: Settings) -> VideoClient:
    """Instantiate the client for ``settings.backend``."""
    if settings.backend == OPENAI_BACKEND:
        return OpenAIVideoClient(
            api_key=settings.openai_api_key,
            api_base=settings.openai_api_base,
            model=settings.openai_video_model,
            timeout=settings.upstream_timeout,
        )
    if settings.backend == SORA_V2_BACKEND:
        return SoraV2Client(
            api_key=settings.sora_v2_api_key,
            api_base=settings.sora_v2_api_base,
            model=settings.sora_v2_model,
            timeout=settings.upstream_timeout,
        )
    raise ConfigurationError(
        f"Unknown VIDEO_BACKEND {settings.backend!r}; expected "
        f"{OPENAI_BACKEND!r} or {SORA_V2_BACKEND!r}"
    )
