"""FFmpeg wrapper: probing, embedded subtitle extraction and encoding runs."""

from __future__ import annotations

import json
import re
import subprocess
from pathlib import Path

from gifclip.config import Settings
from gifclip.errors import ToolError, ToolNotFoundError
from gifclip.logging import get_logger
from gifclip.tools import get_ffprobe_path, require_ffmpeg, subprocess_flags

logger = get_logger(__name__)

_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")

# stderr fragments meaning "there is no text subtitle stream", as opposed to a failure
_NO_STREAM_MARKERS = (
    "matches no streams",
    "does not contain any stream",
    "Output file #0 does not contain any stream",
    # bitmap subtitles (PGS, dvdsub) cannot be converted to SRT
    "text to text or bitmap to bitmap",
)


class FFmpegWrapper:
    """Runs ffmpeg/ffprobe with consistent error handling.

    Args:
        ffmpeg_path: ffmpeg executable
        ffprobe_path: ffprobe executable, optional (duration probing falls
            back to parsing ``ffmpeg -i`` output)
    """

    def __init__(self, ffmpeg_path: str, ffprobe_path: str | None = None) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._ffprobe_path = ffprobe_path

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg_path

    @property
    def ffprobe_path(self) -> str | None:
        return self._ffprobe_path

    def _run(
        self,
        executable: str,
        args: list[str],
        timeout: int,
        text: bool = True,
    ) -> subprocess.CompletedProcess:
        cmd = [executable] + args
        logger.debug("Running " + " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=text,
                timeout=timeout,
                creationflags=subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise ToolError(f"{Path(executable).name} timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise ToolNotFoundError(f"Executable not found: {executable}") from e
        except OSError as e:
            raise ToolError(f"Failed to run {executable}: {e}") from e

    def run_ffmpeg(
        self,
        args: list[str],
        timeout: int = 600,
        check: bool = True,
        text: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run ffmpeg with the given arguments.

        Raises:
            ToolError: If ffmpeg fails and ``check`` is set
        """
        result = self._run(self._ffmpeg_path, args, timeout, text=text)
        if check and result.returncode != 0:
            stderr = result.stderr if text else result.stderr.decode("utf-8", "replace")
            raise ToolError(f"ffmpeg failed: {stderr.strip()[-2000:] or 'unknown error'}")
        return result

    def get_duration(self, video_path: str | Path) -> float | None:
        """Duration of a media file in seconds, or None if unknown."""
        video_path = Path(video_path)

        if self._ffprobe_path:
            result = self._run(
                self._ffprobe_path,
                ["-v", "quiet", "-print_format", "json", "-show_format", str(video_path)],
                timeout=30,
            )
            if result.returncode == 0:
                try:
                    duration = json.loads(result.stdout).get("format", {}).get("duration")
                    if duration is not None:
                        return float(duration)
                except (json.JSONDecodeError, ValueError):
                    logger.debug(f"Unreadable ffprobe output for {video_path}")

        # ffmpeg exits non-zero without an output file; only stderr matters here
        result = self.run_ffmpeg(["-hide_banner", "-i", str(video_path)], timeout=30, check=False)
        match = _DURATION_RE.search(result.stderr)
        if not match:
            return None
        hours, minutes, seconds = match.groups()
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds)

    def extract_embedded_subtitles(self, video_path: str | Path, timeout: int = 120) -> bytes | None:
        """Extract the first subtitle stream of a container as SRT.

        Returns:
            SRT bytes, or None if the file has no subtitle stream or only
            a bitmap one

        Raises:
            ToolError: If ffmpeg fails for another reason
        """
        result = self.run_ffmpeg(
            ["-v", "error", "-i", str(video_path), "-map", "0:s:0", "-f", "srt", "-"],
            timeout=timeout,
            check=False,
            text=False,
        )
        stderr = result.stderr.decode("utf-8", "replace")

        if result.returncode != 0:
            if any(marker in stderr for marker in _NO_STREAM_MARKERS):
                return None
            raise ToolError(
                f"ffmpeg could not extract subtitles from {video_path}: {stderr.strip()[-1000:]}"
            )

        if not result.stdout.strip():
            return None
        return result.stdout


def create_ffmpeg_wrapper(settings: Settings | None = None) -> FFmpegWrapper:
    """Build a wrapper for the configured tools.

    Raises:
        ToolNotFoundError: If ffmpeg is not available
    """
    return FFmpegWrapper(require_ffmpeg(settings), get_ffprobe_path(settings))
