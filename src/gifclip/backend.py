"""Concrete subtitle backend built from yt-dlp, urllib and ffmpeg."""

from __future__ import annotations

from pathlib import Path

from gifclip.downloader import DEFAULT_TIMEOUT, YtDlpClient, fetch_bytes
from gifclip.ffmpeg import FFmpegWrapper
from gifclip.subtitles.models import SubtitleFormat
from gifclip.subtitles.sources import SubtitleBackend


class MediaBackend(SubtitleBackend):
    """Subtitle capabilities backed by the real tools."""

    def __init__(self, ytdlp: YtDlpClient, ffmpeg: FFmpegWrapper, timeout: int = DEFAULT_TIMEOUT):
        self.ytdlp = ytdlp
        self.ffmpeg = ffmpeg
        self.timeout = timeout

    def fetch_remote_subtitles(
        self, video_ref: str, lang: str
    ) -> tuple[bytes, SubtitleFormat] | None:
        return self.ytdlp.fetch_subtitles(video_ref, lang)

    def fetch_bytes(self, url: str) -> bytes:
        return fetch_bytes(url, self.timeout)

    def extract_embedded(self, video_path: Path) -> bytes | None:
        return self.ffmpeg.extract_embedded_subtitles(video_path)
