"""Client-side progress polling for a single in-flight generation."""
import logging
import threading
import time
from typing import Callable, Optional

import requests

from video_errors import PollingError
from video_models import GenerationProgress
from video_status import COMPLETED, FAILED

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
FAILED_MESSAGE = "Video generation failed"

FetchProgress = Callable[[str], GenerationProgress]


class ProgressEndpoint:
    """Fetch progress from the ``/progress`` endpoint of a running app."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def __call__(self, video_id: str) -> GenerationProgress:
        response = self.session.get(
            f"{self.base_url}/progress", params={"id": video_id}, timeout=self.timeout
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise PollingError(
                f"Progress endpoint returned a non-JSON body (HTTP {response.status_code})"
            ) from exc
        if not isinstance(payload, dict) or not payload.get("success") or not payload.get("data"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise PollingError(error or "Failed to fetch progress")
        return GenerationProgress.from_dict(payload["data"])


class _Activation:
    def __init__(self, video_id: str):
        self.video_id = video_id
        self.cancelled = False
        self.wakeup = threading.Event()
        self.thread: Optional[threading.Thread] = None


class ProgressPoller:
    """Poll a generation until it completes, fails or is stopped.

    ``start(video_id)`` fetches right away and then every ``interval`` seconds
    on a worker thread. A ``completed`` status calls ``on_complete`` once and
    ends the activation; ``failed`` sets :attr:`error` and ends it too.
    Fetch errors are recorded in :attr:`error` but polling carries on.

    ``stop()`` cancels the activation. Anything a fetch returns after that is
    dropped: no state change, no callback.

    Callbacks run on the worker thread without the poller lock held, so they
    may read properties or call ``stop()`` and ``wait()``.
    """

    def __init__(
        self,
        fetch_progress: FetchProgress,
        on_complete: Optional[Callable[[GenerationProgress], None]] = None,
        on_update: Optional[Callable[[GenerationProgress], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        interval: float = DEFAULT_INTERVAL,
    ):
        self._fetch = fetch_progress
        self._on_complete = on_complete
        self._on_update = on_update
        self._on_error = on_error
        self.interval = interval
        self._lock = threading.RLock()
        self._activation: Optional[_Activation] = None
        self._progress: Optional[GenerationProgress] = None
        self._error: Optional[str] = None

    @property
    def progress(self) -> Optional[GenerationProgress]:
        with self._lock:
            return self._progress

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def video_id(self) -> Optional[str]:
        with self._lock:
            return self._activation.video_id if self._activation else None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._activation is not None and not self._activation.cancelled

    def start(self, video_id: str) -> None:
        if not video_id:
            raise ValueError("video_id is required")
        activation = _Activation(video_id)
        with self._lock:
            self._cancel_locked()
            self._activation = activation
            self._progress = None
            self._error = None
            activation.thread = threading.Thread(
                target=self._run,
                args=(activation,),
                name=f"progress-poller-{video_id}",
                daemon=True,
            )
        logger.debug("Polling progress for %s every %ss", video_id, self.interval)
        activation.thread.start()

    def stop(self) -> None:
        with self._lock:
            self._cancel_locked()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current activation ends; False if still running."""
        with self._lock:
            activation = self._activation
        if activation is None or activation.thread is None:
            return True
        thread = activation.thread
        if thread is threading.current_thread():
            # Called from a callback; the worker cannot join itself.
            return activation.cancelled
        thread.join(timeout)
        return not thread.is_alive()

    def _cancel_locked(self) -> None:
        if self._activation is not None:
            self._activation.cancelled = True
            self._activation.wakeup.set()

    def _run(self, activation: _Activation) -> None:
        while not activation.cancelled:
            started = time.monotonic()
            self._poll_once(activation)
            if activation.cancelled:
                break
            elapsed = time.monotonic() - started
            activation.wakeup.wait(max(0.0, self.interval - elapsed))

    def _poll_once(self, activation: _Activation) -> None:
        try:
            progress = self._fetch(activation.video_id)
        except Exception as exc:  # any fetch failure is transient for the loop
            message = str(exc) or exc.__class__.__name__
            with self._lock:
                if activation.cancelled:
                    return
                self._error = message
            logger.warning("Progress fetch for %s failed: %s", activation.video_id, message)
            if self._on_error:
                self._on_error(message)
            return

        # State changes happen under the lock; callbacks run after it is released.
        with self._lock:
            if activation.cancelled:
                return
            self._progress = progress
            self._error = None
            if progress.status in (COMPLETED, FAILED):
                activation.cancelled = True
            if progress.status == FAILED:
                self._error = FAILED_MESSAGE

        if self._on_update:
            self._on_update(progress)
        if progress.status == COMPLETED:
            logger.info("Video %s completed", activation.video_id)
            if self._on_complete:
                self._on_complete(progress)
        elif progress.status == FAILED:
            logger.info("Video %s failed", activation.video_id)
            if self._on_error:
                self._on_error(FAILED_MESSAGE)
