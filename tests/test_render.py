"""Tests for render argument building and output naming."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gifclip.clip import ClipPlan
from gifclip.errors import ToolError
from gifclip.ranges import ClipRange
from gifclip.render import (
    OutputFormat,
    RenderOptions,
    build_filters,
    build_render_args,
    default_output_path,
    escape_filter_path,
    gif_max_colors,
    mp4_crf,
    render_clip,
    sanitize_filename,
    webm_crf,
    write_caption_file,
)
from gifclip.subtitles.models import Cue, SubtitleTrack


class TestQualityMapping:
    """Tests for quality to encoder settings."""

    @pytest.mark.parametrize("quality,colors", [(1, 18), (50, 136), (80, 208), (100, 256)])
    def test_gif_colors(self, quality, colors):
        """Test palette size grows with quality."""
        assert gif_max_colors(quality) == colors

    @pytest.mark.parametrize("quality,crf", [(1, 63), (80, 21), (100, 10)])
    def test_webm_crf(self, quality, crf):
        """Test VP9 CRF shrinks with quality."""
        assert webm_crf(quality) == crf

    @pytest.mark.parametrize("quality,crf", [(1, 51), (80, 19), (100, 10)])
    def test_mp4_crf(self, quality, crf):
        """Test x264 CRF shrinks with quality."""
        assert mp4_crf(quality) == crf

    def test_quality_bounds(self):
        """Test quality is validated."""
        with pytest.raises(ValueError):
            RenderOptions(quality=0)
        with pytest.raises(ValueError):
            RenderOptions(quality=101)


class TestFilters:
    """Tests for the filter chain."""

    def test_gif_palette(self):
        """Test the GIF chain uses a generated palette."""
        chain = build_filters(RenderOptions(), None)
        assert chain == (
            "fps=15,scale=480:-1:flags=lanczos,"
            "split[s0][s1];[s0]palettegen=max_colors=208[p];[s1][p]paletteuse=dither=bayer"
        )

    def test_subtitles_first(self):
        """Test captions are burned before scaling."""
        chain = build_filters(RenderOptions(format=OutputFormat.WEBM), Path("/tmp/captions.srt"))
        assert chain == "subtitles='/tmp/captions.srt',fps=15,scale=480:-1"

    def test_escape_filter_path(self):
        """Test separators meaningful to ffmpeg filters are escaped."""
        assert escape_filter_path(Path("C:\\clips\\it's.srt")) == "C\\:\\\\clips\\\\it\\'s.srt"


class TestRenderArgs:
    """Tests for full argument lists."""

    def test_input_seek(self):
        """Test -ss comes before -i so timestamps restart at zero."""
        args = build_render_args(
            Path("in.mp4"), Path("out.gif"), ClipRange(12.0, 16.5), RenderOptions()
        )

        assert args[:7] == ["-y", "-ss", "12.000", "-i", "in.mp4", "-t", "4.500"]
        assert args[-1] == "out.gif"

    def test_webm(self):
        """Test VP9 settings without audio."""
        options = RenderOptions(format=OutputFormat.WEBM, quality=80)
        args = build_render_args(Path("in.mp4"), Path("out.webm"), ClipRange(0, 5), options)

        assert args[args.index("-c:v") + 1] == "libvpx-vp9"
        assert args[args.index("-crf") + 1] == "21"
        assert args[args.index("-b:v") + 1] == "0"
        assert "-an" in args

    def test_mp4(self):
        """Test x264 settings."""
        options = RenderOptions(format=OutputFormat.MP4, width=320, fps=24)
        args = build_render_args(Path("in.mp4"), Path("out.mp4"), ClipRange(0, 5), options)

        assert args[args.index("-c:v") + 1] == "libx264"
        assert args[args.index("-preset") + 1] == "medium"
        assert args[args.index("-pix_fmt") + 1] == "yuv420p"
        assert args[args.index("-movflags") + 1] == "+faststart"
        assert args[args.index("-vf") + 1] == "fps=24,scale=320:-1"


class TestNaming:
    """Tests for output filenames."""

    def test_sanitize(self):
        """Test unsafe characters are replaced."""
        assert sanitize_filename('What: "a" <clip>/?') == "What_ _a_ _clip___"

    def test_truncate(self):
        """Test long titles are cut."""
        assert len(sanitize_filename("x" * 200)) == 50

    def test_default_output_path(self):
        """Test the generated name carries the range."""
        path = default_output_path("Casablanca", ClipRange(90.0, 105.0), OutputFormat.GIF)
        assert path == Path("Casablanca_1m30s-1m45s.gif")

    def test_empty_title(self):
        """Test a fallback name for empty titles."""
        path = default_output_path("", ClipRange(0.0, 5.0), OutputFormat.MP4)
        assert path == Path("clip_0m0s-0m5s.mp4")


class TestCaptionFile:
    """Tests for writing captions for the subtitles filter."""

    def test_literal_text(self, tmp_path):
        """Test literal text covers the whole clip."""
        plan = ClipPlan(clip_range=ClipRange(12.0, 16.5), caption_text="Here's looking at you")
        path = write_caption_file(plan, tmp_path)

        assert path.read_text(encoding="utf-8") == (
            "1\n00:00:00,000 --> 00:00:04,500\nHere's looking at you\n"
        )

    def test_track(self, tmp_path):
        """Test windowed cues are written as is."""
        captions = SubtitleTrack(cues=(Cue(start=0.0, end=2.5, text="Frankly"),))
        plan = ClipPlan(clip_range=ClipRange(12.0, 16.5), captions=captions)

        path = write_caption_file(plan, tmp_path)
        assert "00:00:00,000 --> 00:00:02,500\nFrankly" in path.read_text(encoding="utf-8")

    def test_no_captions(self, tmp_path):
        """Test nothing is written without captions."""
        assert write_caption_file(ClipPlan(clip_range=ClipRange(0, 1)), tmp_path) is None


class TestRenderClip:
    """Tests for running a render."""

    def test_render(self, tmp_path):
        """Test ffmpeg is run and the output returned."""
        output = tmp_path / "out" / "clip.gif"
        ffmpeg = MagicMock()
        ffmpeg.run_ffmpeg.side_effect = lambda args: Path(args[-1]).write_bytes(b"GIF89a")
        plan = ClipPlan(clip_range=ClipRange(1.0, 2.0), caption_text="Hi")

        result = render_clip(ffmpeg, Path("in.mp4"), output, plan, RenderOptions(), tmp_path / "work")

        assert result == output
        args = ffmpeg.run_ffmpeg.call_args[0][0]
        assert "subtitles=" in args[args.index("-vf") + 1]

    def test_missing_output(self, tmp_path):
        """Test a silent ffmpeg failure is reported."""
        ffmpeg = MagicMock()
        plan = ClipPlan(clip_range=ClipRange(1.0, 2.0))
        with pytest.raises(ToolError, match="not created"):
            render_clip(ffmpeg, Path("in.mp4"), tmp_path / "out.gif", plan, RenderOptions(), tmp_path)
