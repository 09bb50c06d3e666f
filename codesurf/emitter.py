# CodeSurf — playback surface
#
# The surface is an external renderer driven by discrete command messages
# (play, pause, updateUrl, seekTo) plus open/dispose lifecycle messages.
# Transports deliver those messages: HTTP when a surface endpoint is
# configured, a local JSONL file otherwise. Sending never raises.

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .normalizer import PlaybackCommand

logger = logging.getLogger(__name__)

OPEN = "open"
DISPOSE = "dispose"


def embed_url(url: str) -> str:
    """Turn a youtube.com/watch?v=ID link into its embed form."""
    if "youtube.com/watch" in url and "v=" in url:
        video_id = url.split("v=", 1)[1].split("&", 1)[0]
        return f"https://www.youtube.com/embed/{video_id}"
    return url


# ── Transports ─────────────────────────────────────────────────────────────

class HttpTransport:
    """
    POSTs each message as JSON to <base_url>/api/playback.

    Requests run on a single worker thread so the event loop never blocks
    and messages reach the surface in the order they were sent.
    """

    def __init__(self, base_url: str, timeout: float = 2):
        self.url = f"{base_url.rstrip('/')}/api/playback"
        self.timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="codesurf-surface")

    def send(self, message: Dict[str, Any]):
        self._pool.submit(self._post, json.dumps(message))

    def _post(self, payload: str):
        try:
            r = requests.post(
                self.url,
                data=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            if not r.ok:
                logger.warning(f"Surface rejected message ({r.status_code}): {payload}")
        except requests.RequestException as e:
            logger.warning(f"Surface unreachable, dropped message: {e}")

    def close(self):
        self._pool.shutdown(wait=True)


class JsonlTransport:
    """Standalone mode: append each message to a JSONL file and print it."""

    def __init__(self, path: str):
        self.path = Path(path)

    def send(self, message: Dict[str, Any]):
        record = dict(message, ts=time.time())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            logger.error(f"JSONL write error: {e}")
        _print_message(message)

    def close(self):
        pass


def _print_message(message: Dict[str, Any]):
    parts = [f"  [surface] {message['command']}"]
    if message.get("url"):
        parts.append(message["url"])
    if message.get("startTime"):
        parts.append(f"@{message['startTime']:.0f}s")
    print(" ".join(parts))


# ── Surface ────────────────────────────────────────────────────────────────

class PlaybackSurface:
    """
    Local handle on the external playback surface.

    Commands sent while the surface is not open are dropped; only open()
    creates it.
    """

    def __init__(self, transport):
        self.transport = transport
        self._open = False
        self.position: float = 0.0   # last reported playback time (s)

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, url: str, column: str = "beside"):
        if self._open:
            return
        self._open = True
        self.transport.send({
            "command": OPEN,
            "url": embed_url(url),
            "startTime": self.position,
            "column": column,
        })

    def dispose(self):
        if not self._open:
            return
        self._open = False
        self.transport.send({"command": DISPOSE})

    def mark_closed(self):
        """The user closed the surface on their side; nothing to send."""
        self._open = False

    def play(self):
        self._post({"command": PlaybackCommand.PLAY})

    def pause(self):
        self._post({"command": PlaybackCommand.PAUSE})

    def update_url(self, url: str, start_time: float = 0.0):
        self._post({"command": PlaybackCommand.UPDATE_URL, "url": embed_url(url), "startTime": start_time})

    def seek_to(self, seconds: float):
        self._post({"command": PlaybackCommand.SEEK_TO, "time": seconds})

    def report_position(self, seconds: float):
        self.position = max(0.0, seconds)

    def _post(self, message: Dict[str, Any]):
        if not self._open:
            logger.debug(f"Surface absent, dropped {message['command']}")
            return
        self.transport.send(message)


def make_transport(surface_url: Optional[str], jsonl_path: str):
    if surface_url:
        return HttpTransport(surface_url)
    return JsonlTransport(jsonl_path)
