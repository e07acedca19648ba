"""Shared fixtures for gifclip tests."""

import logging
from pathlib import Path

import pytest

from gifclip.errors import FetchError
from gifclip.logging import ROOT_LOGGER, LogConfig, configure_logging
from gifclip.subtitles.models import SubtitleFormat
from gifclip.subtitles.sources import SubtitleBackend

SAMPLE_SRT = b"""1
00:00:05,000 --> 00:00:07,000
What is the Matrix?

2
00:00:12,000 --> 00:00:14,500
Frankly my dear, I don't give a damn.

3
00:00:40,000 --> 00:00:43,000
No one can be told what the Matrix is.
"""


class RecordingBackend(SubtitleBackend):
    """Fake backend returning canned data and recording every call."""

    def __init__(self, remote=None, embedded=None, url_data=None, fail_with=None):
        self.remote = remote
        self.embedded = embedded
        self.url_data = url_data or {}
        self.fail_with = fail_with
        self.calls = []

    def fetch_remote_subtitles(self, video_ref, lang):
        self.calls.append(("remote", video_ref, lang))
        if self.fail_with:
            raise self.fail_with
        return self.remote

    def fetch_bytes(self, url):
        self.calls.append(("fetch", url))
        if url not in self.url_data:
            raise FetchError(f"HTTP 404 fetching {url}", {"url": url})
        return self.url_data[url]

    def extract_embedded(self, video_path: Path):
        self.calls.append(("embedded", video_path))
        if self.fail_with:
            raise self.fail_with
        return self.embedded


@pytest.fixture
def sample_srt():
    return SAMPLE_SRT


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def remote_backend():
    return RecordingBackend(remote=(SAMPLE_SRT, SubtitleFormat.SRT))


@pytest.fixture
def gifclip_home(tmp_path, monkeypatch):
    """Point the settings directory at a temporary location."""
    home = tmp_path / "gifclip_home"
    monkeypatch.setenv("GIFCLIP_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore the default logging configuration after each test."""
    yield
    configure_logging(LogConfig())
    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.propagate = True
