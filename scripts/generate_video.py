#!/usr/bin/env python3
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import requests

from progress_poller import ProgressEndpoint, ProgressPoller
from video_status import COMPLETED


def save_binary(content: bytes, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "wb") as f:
        f.write(content)


def print_progress(progress) -> None:
    line = f"  {progress.progress:3d}%  {progress.status:<10}  {progress.current_step}"
    if progress.estimated_time_remaining:
        line += f"  (~{int(progress.estimated_time_remaining)}s left)"
    print(line)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate a video through a running Sora video app")
    p.add_argument("--prompt", required=True, help="Text prompt for the video")
    p.add_argument("--duration", type=int, default=10, help="Duration in seconds")
    p.add_argument("--resolution", default="1080p", help="720p, 1080p or 4k")
    p.add_argument("--aspect-ratio", default="16:9", help="16:9, 9:16 or 1:1")
    p.add_argument("--style", default="realistic", help="realistic, cinematic, animated or artistic")
    p.add_argument("--server", default="http://localhost:8001", help="Base URL of the app")
    p.add_argument("--out", default=None, help="Save the finished mp4 here")
    p.add_argument("--interval", type=float, default=1.0, help="Seconds between progress checks")
    p.add_argument("--max-wait", type=float, default=600, help="Give up after this many seconds")
    p.add_argument("--timeout", type=float, default=30, help="Per-request timeout in seconds")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None, session: Optional[requests.Session] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")
    session = session or requests.Session()
    server = args.server.rstrip("/")

    body = {
        "prompt": args.prompt,
        "duration": args.duration,
        "resolution": args.resolution,
        "aspectRatio": args.aspect_ratio,
        "style": args.style,
    }
    try:
        response = session.post(f"{server}/generate", json=body, timeout=args.timeout)
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        print(f"Could not submit to {server}: {exc}")
        return 2
    if not payload.get("success"):
        print(f"Generation request failed: {payload.get('error')}")
        return 2

    video_id = payload["data"]["id"]
    print(f"Started video {video_id}")

    poller = ProgressPoller(
        ProgressEndpoint(server, session=session, timeout=args.timeout),
        on_update=print_progress,
        on_error=lambda message: print(f"  ! {message}"),
        interval=args.interval,
    )
    poller.start(video_id)
    try:
        finished = poller.wait(args.max_wait)
    except KeyboardInterrupt:
        poller.stop()
        print("Stopped polling")
        return 130
    if not finished:
        poller.stop()
        print("Timed out waiting for video job to complete")
        return 3

    progress = poller.progress
    if progress is None or progress.status != COMPLETED:
        print(poller.error or "Video generation failed")
        return 3

    download_url = f"{server}/download?id={quote(video_id, safe='')}"
    if not args.out:
        print(f"Video ready: {download_url}")
        return 0

    r = session.get(download_url, timeout=180)
    if r.status_code >= 400:
        print(f"Download failed ({r.status_code})")
        return 3
    out_path = Path(args.out)
    save_binary(r.content, out_path)
    print(f"Saved video to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
