"""Playing audio and video files through an external mpv player."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import threading
import time
from pathlib import Path

_log = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1
_MPV_OPTIONS = (
    "--no-terminal",
    "--force-window=yes",
    "--ontop",
    "--no-border",
    "--no-osc",
    "--loop=no",
    "--keep-open=no",
)


class MediaPlaybackError(Exception):
    """Raised when a song cannot be played."""


def _write_temp_file(song_name: str, data: bytes) -> Path:
    ext = song_name.rsplit(".", 1)[-1]
    path = Path(tempfile.gettempdir()) / (
        f"e_midi_tmp_{song_name.replace(' ', '_')}.{ext}"
    )
    path.write_bytes(bytes(data))
    _log.info("temp file: %s (%d bytes)", path, path.stat().st_size)
    return path


def play_media_file(
    song_name: str,
    file_path: str | None = None,
    data: bytes | None = None,
    stop_flag: threading.Event | None = None,
) -> None:
    """Play a file, or in-memory media, with mpv until it ends or is stopped.

    ``file_path`` may carry a ``file://`` prefix. Without a path, ``data`` is
    written to a temporary file that is removed afterwards. Setting
    ``stop_flag`` ends playback early.
    """
    mpv = shutil.which("mpv")
    if mpv is None:
        raise MediaPlaybackError("No playback backend available: mpv was not found")
    if stop_flag is None:
        stop_flag = threading.Event()
    _log.info("using mpv for playback: %s", mpv)

    tmp_path: Path | None = None
    if file_path is not None:
        uri = file_path.removeprefix("file://")
    else:
        if data is None:
            raise MediaPlaybackError("No data for playback")
        tmp_path = _write_temp_file(song_name, data)
        uri = str(tmp_path)

    try:
        try:
            process = subprocess.Popen(
                [mpv, *_MPV_OPTIONS, uri],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise MediaPlaybackError(f"Failed to start mpv: {exc}") from exc
        while not stop_flag.is_set():
            if process.poll() is not None:
                break
            time.sleep(_POLL_INTERVAL)
        if process.poll() is None:
            process.kill()
        process.wait()
    finally:
        if tmp_path is not None:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
    _log.info("playback finished: %s", song_name)