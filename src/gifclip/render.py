"""Rendering a resolved clip to GIF, WebM or MP4 with burned-in captions."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from gifclip.clip import ClipPlan
from gifclip.errors import ToolError
from gifclip.ffmpeg import FFmpegWrapper
from gifclip.logging import get_logger
from gifclip.ranges import ClipRange
from gifclip.subtitles.models import Cue, SubtitleTrack
from gifclip.timestamps import format_filename_timestamp

logger = get_logger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*]')
MAX_TITLE_LENGTH = 50


class OutputFormat(str, Enum):
    GIF = "gif"
    WEBM = "webm"
    MP4 = "mp4"


class RenderOptions(BaseModel):
    """Output settings."""

    format: OutputFormat = OutputFormat.GIF
    width: int = Field(default=480, gt=0, description="Output width, height keeps aspect")
    fps: int = Field(default=15, gt=0)
    quality: int = Field(default=80, ge=1, le=100, description="Higher is better")


def gif_max_colors(quality: int) -> int:
    """Palette size for a GIF: 16 colors at quality 0, 256 at 100."""
    return 16 + int(quality / 100 * 240)


def webm_crf(quality: int) -> int:
    return 63 - int(quality / 100 * 53)


def mp4_crf(quality: int) -> int:
    return 51 - int(quality / 100 * 41)


def sanitize_filename(name: str) -> str:
    """Replace characters that are unsafe in filenames and truncate."""
    return _UNSAFE_FILENAME_RE.sub("_", name)[:MAX_TITLE_LENGTH]


def default_output_path(title: str, clip_range: ClipRange, output_format: OutputFormat) -> Path:
    """``<title>_<start>-<end>.<ext>`` in the current directory."""
    start = format_filename_timestamp(clip_range.start)
    end = format_filename_timestamp(clip_range.end)
    return Path(f"{sanitize_filename(title) or 'clip'}_{start}-{end}.{output_format.value}")


def escape_filter_path(path: Path) -> str:
    """Escape a path for use inside an ffmpeg filter argument."""
    return str(path).replace("\\", "\\\\").replace(":", "\\:").replace("'", "\\'")


def write_caption_file(plan: ClipPlan, work_dir: Path) -> Path | None:
    """Write the plan's captions as an SRT file for the subtitles filter.

    A literal caption is shown for the whole clip.

    Returns:
        Path to the SRT file, or None when the plan has no captions
    """
    if plan.caption_text:
        track = SubtitleTrack(
            cues=(Cue(start=0.0, end=plan.clip_range.duration, text=plan.caption_text),)
        )
    elif plan.captions is not None and len(plan.captions) > 0:
        track = plan.captions
    else:
        return None

    work_dir.mkdir(parents=True, exist_ok=True)
    path = work_dir / "captions.srt"
    path.write_text(track.to_srt(), encoding="utf-8")
    return path


def build_filters(options: RenderOptions, subtitle_path: Path | None) -> str:
    """Video filter chain for the chosen format.

    The subtitles filter comes first so captions are drawn at source
    resolution before scaling.
    """
    scale = f"scale={options.width}:-1"
    if options.format == OutputFormat.GIF:
        scale += ":flags=lanczos"

    filters = [f"fps={options.fps}", scale]
    if subtitle_path is not None:
        filters.insert(0, f"subtitles='{escape_filter_path(subtitle_path)}'")

    chain = ",".join(filters)
    if options.format == OutputFormat.GIF:
        chain += (
            f",split[s0][s1];[s0]palettegen=max_colors={gif_max_colors(options.quality)}[p];"
            "[s1][p]paletteuse=dither=bayer"
        )
    return chain


def build_render_args(
    video_path: Path,
    output_path: Path,
    clip_range: ClipRange,
    options: RenderOptions,
    subtitle_path: Path | None = None,
) -> list[str]:
    """Build ffmpeg arguments for a render.

    Input seeking (``-ss`` before ``-i``) resets timestamps to zero, which is
    why captions are written relative to the clip start.
    """
    args = [
        "-y",
        "-ss", f"{clip_range.start:.3f}",
        "-i", str(video_path),
        "-t", f"{clip_range.duration:.3f}",
        "-vf", build_filters(options, subtitle_path),
    ]

    if options.format == OutputFormat.WEBM:
        args.extend([
            "-c:v", "libvpx-vp9",
            "-crf", str(webm_crf(options.quality)),
            "-b:v", "0",
            "-an",
        ])
    elif options.format == OutputFormat.MP4:
        args.extend([
            "-c:v", "libx264",
            "-crf", str(mp4_crf(options.quality)),
            "-preset", "medium",
            "-pix_fmt", "yuv420p",
            "-an",
            "-movflags", "+faststart",
        ])

    args.append(str(output_path))
    return args


def render_clip(
    ffmpeg: FFmpegWrapper,
    video_path: Path,
    output_path: Path,
    plan: ClipPlan,
    options: RenderOptions,
    work_dir: Path,
) -> Path:
    """Render a clip plan to ``output_path``.

    Raises:
        ToolError: If ffmpeg fails or produces no file
    """
    subtitle_path = write_caption_file(plan, work_dir)
    args = build_render_args(video_path, output_path, plan.clip_range, options, subtitle_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(
        f"Rendering {options.format.value}",
        extra={
            "start": plan.clip_range.start,
            "duration": plan.clip_range.duration,
            "captions": subtitle_path is not None,
        },
    )
    ffmpeg.run_ffmpeg(args)

    if not output_path.exists():
        raise ToolError(f"Output file was not created: {output_path}")
    return output_path
