#!/usr/bin/env python3
import logging
from typing import Any, Optional

from flask import Blueprint, Flask, current_app, jsonify, redirect, render_template_string, request
from werkzeug.exceptions import HTTPException

from settings import Settings
from video_client import VideoClient, build_client
from video_errors import ValidationError, VideoServiceError
from video_models import VideoGenerationRequest

logger = logging.getLogger(__name__)

videos = Blueprint("videos", __name__)


def get_client() -> VideoClient:
    return current_app.extensions["video_client"]


def success(data: Any, message: Optional[str] = None):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body)


def failure(error: str, status: int):
    return jsonify({"success": False, "error": error}), status


def require_id() -> str:
    video_id = request.args.get("id", "").strip()
    if not video_id:
        raise ValidationError("Video ID is required")
    return video_id


@videos.route("/")
def index():
    return render_template_string(HTML_TEMPLATE)


@videos.route("/generate", methods=["POST"])
def generate():
    """Start a new generation."""
    video_request = VideoGenerationRequest.from_payload(request.get_json(silent=True))
    client = get_client()
    client.ensure_configured()
    record = client.submit(video_request)
    return success(record.to_dict(), "Video generation started successfully")


@videos.route("/generate", methods=["GET"])
def get_video():
    """Return one video by id; neither upstream can list, so no id gives []."""
    client = get_client()
    client.ensure_configured()
    video_id = request.args.get("id", "").strip()
    if not video_id:
        return success(
            [],
            f"{client.name} API does not support listing all videos. "
            "Please use specific video IDs to retrieve individual videos.",
        )
    return success(client.fetch_status(video_id).to_dict())


@videos.route("/progress", methods=["GET"])
def progress():
    video_id = require_id()
    return success(get_client().fetch_progress(video_id).to_dict())


@videos.route("/download", methods=["GET"])
def download():
    """Redirect to the upstream-hosted video file."""
    video_id = require_id()
    url = get_client().resolve_download_url(video_id)
    return redirect(url, code=302)


def handle_service_error(exc: VideoServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.path, exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.path, exc)
    return failure(exc.message, exc.status_code)


def handle_unexpected_error(exc: Exception):
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unhandled error in %s %s", request.method, request.path)
    return failure(str(exc) or "Unknown error occurred", 500)


def create_app(settings: Optional[Settings] = None, client: Optional[VideoClient] = None) -> Flask:
    settings = settings or Settings.from_env()
    client = client or build_client(settings)
    if not client.configured:
        logger.warning("WARNING: %s environment variable is not set", client.api_key_env)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.extensions["video_client"] = client
    app.register_blueprint(videos)
    app.register_error_handler(VideoServiceError, handle_service_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    return app


HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Sora Video Generator</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            padding: 20px;
        }
        .container { max-width: 720px; margin: 0 auto; }
        h1 { color: white; text-align: center; margin-bottom: 30px; font-size: 2.5em; }
        .card {
            background: white;
            border-radius: 16px;
            padding: 30px;
            box-shadow: 0 20px 60px rgba(0,0,0,0.3);
            margin-bottom: 20px;
        }
        h2 { color: #667eea; margin-bottom: 20px; font-size: 1.5em; }
        .form-group { margin-bottom: 20px; }
        label { display: block; color: #333; font-weight: 600; margin-bottom: 8px; font-size: 0.9em; }
        textarea, select {
            width: 100%;
            padding: 12px;
            border: 2px solid #e0e0e0;
            border-radius: 8px;
            font-size: 14px;
        }
        textarea { resize: vertical; min-height: 100px; font-family: inherit; }
        .row { display: grid; grid-template-columns: repeat(4, 1fr); gap: 12px; }
        .btn {
            width: 100%;
            padding: 14px;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            color: white;
            border: none;
            border-radius: 8px;
            font-size: 16px;
            font-weight: 600;
            cursor: pointer;
        }
        .btn:disabled { opacity: 0.5; cursor: not-allowed; }
        .status { margin-top: 15px; padding: 12px; border-radius: 8px; text-align: center; font-size: 14px; display: none; }
        .status.show { display: block; }
        .status.error { background: #fee; color: #c33; }
        .status.success { background: #efe; color: #3a3; }
        .status.loading { background: #fef8e7; color: #856404; }
        .bar { width: 100%; height: 16px; background: #eee; border-radius: 8px; overflow: hidden; }
        .bar-fill { height: 100%; width: 0; background: linear-gradient(90deg, #667eea, #764ba2); transition: width 0.5s; }
        .progress-meta { display: flex; justify-content: space-between; margin: 10px 0; color: #555; font-size: 14px; }
        video { width: 100%; border-radius: 8px; margin-top: 15px; }
        #progressCard, #resultCard { display: none; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Sora Video Generator</h1>

        <div class="card">
            <h2>Create Video</h2>
            <form id="videoForm">
                <div class="form-group">
                    <label>Prompt *</label>
                    <textarea id="prompt" placeholder="A serene sunset over the ocean with gentle waves, cinematic lighting..."></textarea>
                </div>
                <div class="form-group row">
                    <div>
                        <label>Duration</label>
                        <select id="duration">
                            <option value="4">4 s</option>
                            <option value="8">8 s</option>
                            <option value="10" selected>10 s</option>
                            <option value="12">12 s</option>
                        </select>
                    </div>
                    <div>
                        <label>Resolution</label>
                        <select id="resolution">
                            <option value="720p">720p</option>
                            <option value="1080p" selected>1080p</option>
                            <option value="4k">4k</option>
                        </select>
                    </div>
                    <div>
                        <label>Orientation</label>
                        <select id="aspectRatio">
                            <option value="16:9" selected>16:9</option>
                            <option value="9:16">9:16</option>
                            <option value="1:1">1:1</option>
                        </select>
                    </div>
                    <div>
                        <label>Style</label>
                        <select id="style">
                            <option value="realistic" selected>Realistic</option>
                            <option value="cinematic">Cinematic</option>
                            <option value="animated">Animated</option>
                            <option value="artistic">Artistic</option>
                        </select>
                    </div>
                </div>
                <button type="submit" class="btn" id="generateBtn">Generate Video</button>
                <div class="status" id="status"></div>
            </form>
        </div>

        <div class="card" id="progressCard">
            <h2 id="progressTitle">Video Generation</h2>
            <div class="progress-meta">
                <span id="currentStep">Initializing</span>
                <strong id="progressValue">0%</strong>
            </div>
            <div class="bar"><div class="bar-fill" id="progressBar"></div></div>
            <div class="progress-meta"><span id="remaining"></span></div>
        </div>

        <div class="card" id="resultCard">
            <h2>Your Video</h2>
            <video id="player" controls preload="metadata"></video>
            <a class="btn" id="downloadLink" style="display:block;text-align:center;text-decoration:none;margin-top:15px;">Download</a>
        </div>
    </div>

    <script>
        let stopPolling = null;

        function showStatus(type, message) {
            const status = document.getElementById('status');
            status.className = 'status show ' + type;
            status.textContent = message;
        }

        function renderProgress(progress) {
            document.getElementById('progressTitle').textContent =
                progress.status === 'processing' ? 'Creating Your Video' : 'Video Generation';
            document.getElementById('currentStep').textContent = progress.currentStep || progress.status;
            document.getElementById('progressValue').textContent = progress.progress + '%';
            document.getElementById('progressBar').style.width = progress.progress + '%';
            document.getElementById('remaining').textContent = progress.estimatedTimeRemaining
                ? Math.ceil(progress.estimatedTimeRemaining) + ' seconds remaining'
                : '';
        }

        function showResult(videoId) {
            const url = '/download?id=' + encodeURIComponent(videoId);
            document.getElementById('player').src = url;
            document.getElementById('downloadLink').href = url;
            document.getElementById('resultCard').style.display = 'block';
        }

        // One poll at a time; the returned function cancels it.
        function pollProgress(videoId, onComplete) {
            let cancelled = false;

            const fetchProgress = async () => {
                if (cancelled) return;
                try {
                    const response = await fetch('/progress?id=' + encodeURIComponent(videoId));
                    const body = await response.json();
                    if (cancelled) return;
                    if (body.success && body.data) {
                        renderProgress(body.data);
                        if (body.data.status === 'completed') {
                            stop();
                            onComplete(videoId);
                        } else if (body.data.status === 'failed') {
                            stop();
                            showStatus('error', 'Video generation failed');
                        }
                    } else {
                        showStatus('error', body.error || 'Failed to fetch progress');
                    }
                } catch (err) {
                    if (!cancelled) showStatus('error', err.message);
                }
            };

            const interval = setInterval(fetchProgress, 1000);
            const stop = () => { cancelled = true; clearInterval(interval); };
            fetchProgress();
            return stop;
        }

        document.getElementById('videoForm').addEventListener('submit', async (e) => {
            e.preventDefault();
            const prompt = document.getElementById('prompt').value.trim();
            if (!prompt) {
                showStatus('error', 'Please enter a prompt');
                return;
            }
            if (stopPolling) stopPolling();
            document.getElementById('resultCard').style.display = 'none';
            document.getElementById('generateBtn').disabled = true;
            showStatus('loading', 'Submitting...');

            try {
                const response = await fetch('/generate', {
                    method: 'POST',
                    headers: {'Content-Type': 'application/json'},
                    body: JSON.stringify({
                        prompt,
                        duration: parseInt(document.getElementById('duration').value),
                        resolution: document.getElementById('resolution').value,
                        aspectRatio: document.getElementById('aspectRatio').value,
                        style: document.getElementById('style').value,
                    })
                });
                const body = await response.json();
                if (!body.success) {
                    showStatus('error', body.error || 'Failed to generate video');
                    return;
                }
                showStatus('success', body.message);
                document.getElementById('progressCard').style.display = 'block';
                renderProgress({progress: 0, status: body.data.status, currentStep: 'Queued'});
                stopPolling = pollProgress(body.data.id, showResult);
            } catch (err) {
                showStatus('error', 'Network error: ' + err.message);
            } finally {
                document.getElementById('generateBtn').disabled = false;
            }
        });

        window.addEventListener('beforeunload', () => { if (stopPolling) stopPolling(); });
    </script>
</body>
</html>
"""


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info("Starting Sora video app with the %s backend", settings.backend)
    logger.info("Open: http://localhost:%s", settings.port)
    app.run(debug=settings.debug, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
