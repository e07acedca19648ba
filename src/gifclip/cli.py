"""Command-line interface for gifclip.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Annotated, Optional
from urllib.parse import urlparse

import typer
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

# Load environment variables from .env files
# Priority: local .env > ~/.gifclip/.env
_user_env = Path.home() / ".gifclip" / ".env"
if _user_env.exists():
    load_dotenv(_user_env)
load_dotenv()

from gifclip import __version__
from gifclip.backend import MediaBackend
from gifclip.clip import ClipPlan, ClipRequest, resolve_clip
from gifclip.config import Settings, ToolSource, get_settings_path, load_settings, save_settings
from gifclip.downloader import YtDlpClient, download_file
from gifclip.errors import GifclipError, ResourceError, ValidationError, format_error_for_display
from gifclip.ffmpeg import FFmpegWrapper, create_ffmpeg_wrapper
from gifclip.inputs import InputKind, detect_input_kind
from gifclip.logging import LogConfig, configure_logging, get_logger, verbosity_from_flags
from gifclip.matcher import DialogueQuery
from gifclip.render import OutputFormat, RenderOptions, default_output_path, render_clip
from gifclip.timestamps import format_timestamp, parse_timestamp
from gifclip.tools import get_dependency_report, get_ffmpeg_info

logger = get_logger(__name__)

app = typer.Typer(
    name="gifclip",
    help="Turn a moment of a video into a GIF, WebM or MP4 with burned-in captions.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"gifclip version {__version__}")
        raise typer.Exit()


def _fail(error: BaseException) -> None:
    err_console.print(
        f"[red]Error:[/red] {escape(format_error_for_display(error))}",
        highlight=False,
        soft_wrap=True,
    )
    raise typer.Exit(1)


def _as_validation_error(error: PydanticValidationError) -> ValidationError:
    """Convert a pydantic error into a domain one with a readable message."""
    messages = []
    for detail in error.errors():
        msg = detail["msg"].removeprefix("Value error, ")
        loc = ".".join(str(part) for part in detail.get("loc", ()))
        messages.append(f"{loc}: {msg}" if loc else msg)
    return ValidationError("; ".join(messages))


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """gifclip - video moments to captioned GIFs.

    Pick the moment with [bold]timestamps[/bold] (1:30 1:45) or with a
    [bold]dialogue quote[/bold] (--from "hello there").
    """
    pass


def _title_for(source: str, kind: InputKind) -> str:
    if kind == InputKind.DIRECT_URL:
        return Path(urlparse(source).path).stem
    return Path(source).stem


def _obtain_local_video(
    source: str,
    kind: InputKind,
    work_dir: Path,
) -> Path:
    """Get a local media file for a direct URL or local path.

    Raises:
        ResourceError: If a local file does not exist
        FetchError: If a direct download fails
    """
    if kind == InputKind.DIRECT_URL:
        suffix = Path(urlparse(source).path).suffix
        console.print(f"[cyan]Downloading[/cyan] {source}")
        return download_file(source, work_dir / f"source{suffix}")

    path = Path(source).expanduser()
    if not path.is_file():
        raise ResourceError(f"Video file not found: {path}", {"path": str(path)})
    return path


def _run_clip(
    request: ClipRequest,
    options: RenderOptions,
    output: Path | None,
    ffmpeg: FFmpegWrapper,
    ytdlp: YtDlpClient,
    work_dir: Path,
) -> Path:
    backend = MediaBackend(ytdlp, ffmpeg)

    if request.input_kind == InputKind.REMOTE_PLATFORM:
        metadata = ytdlp.get_metadata(request.source)
        title = metadata.title or metadata.video_id or "clip"
        console.print(f"Video: {title}")
        # Resolve before downloading so a missing quote fails fast
        plan = resolve_clip(request, backend, metadata.duration)
        video_path = ytdlp.download_video(request.source, work_dir)
    else:
        video_path = _obtain_local_video(request.source, request.input_kind, work_dir)
        title = _title_for(request.source, request.input_kind)
        duration = ffmpeg.get_duration(video_path)
        request = request.model_copy(update={"video_path": video_path})
        plan = resolve_clip(request, backend, duration)

    _print_plan(plan)
    output_path = output or default_output_path(title, plan.clip_range, options.format)
    return render_clip(ffmpeg, video_path, output_path, plan, options, work_dir)


def _print_plan(plan: ClipPlan) -> None:
    clip_range = plan.clip_range
    captions = "none"
    if plan.caption_text:
        captions = "custom text"
    elif plan.captions is not None:
        captions = f"{len(plan.captions)} cue(s)"
    console.print(
        f"Clip: {format_timestamp(clip_range.start)} - {format_timestamp(clip_range.end)} "
        f"({clip_range.duration:.1f}s), captions: {captions}"
    )


@app.command()
def clip(
    source: Annotated[str, typer.Argument(help="Video URL (platform or direct media) or local file")],
    start: Annotated[
        Optional[str], typer.Argument(help="Start time (e.g. 1:30, 90, 1:02:03.5)")
    ] = None,
    end: Annotated[Optional[str], typer.Argument(help="End time")] = None,
    from_text: Annotated[
        Optional[str],
        typer.Option("--from", help="Dialogue to start the clip at (instead of timestamps)"),
    ] = None,
    to_text: Annotated[
        Optional[str],
        typer.Option("--to", help="Dialogue to end the clip at (with --from)"),
    ] = None,
    pad: Annotated[
        Optional[float], typer.Option("--pad", help="Seconds of padding on both sides")
    ] = None,
    pad_before: Annotated[
        Optional[float], typer.Option("--pad-before", help="Seconds of padding before")
    ] = None,
    pad_after: Annotated[
        Optional[float], typer.Option("--pad-after", help="Seconds of padding after")
    ] = None,
    subs: Annotated[
        Optional[str], typer.Option("--subs", help="Subtitle file or URL to use instead")
    ] = None,
    no_subs: Annotated[bool, typer.Option("--no-subs", help="Do not burn in subtitles")] = False,
    lang: Annotated[Optional[str], typer.Option("--lang", help="Subtitle language code")] = None,
    text: Annotated[
        Optional[str], typer.Option("--text", help="Custom caption instead of subtitles")
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file (default: from the video title)"),
    ] = None,
    output_format: Annotated[
        Optional[OutputFormat], typer.Option("--format", "-f", help="Output format")
    ] = None,
    width: Annotated[Optional[int], typer.Option("--width", "-w", help="Output width")] = None,
    fps: Annotated[Optional[int], typer.Option("--fps", help="Frames per second")] = None,
    quality: Annotated[
        Optional[int], typer.Option("--quality", "-q", help="Quality 1-100")
    ] = None,
    verbose: Annotated[
        int, typer.Option("--verbose", "-v", count=True, help="More output (-vv for debug)")
    ] = 0,
    quiet: Annotated[bool, typer.Option("--quiet", help="Only show errors")] = False,
    log_file: Annotated[
        Optional[Path], typer.Option("--log-file", help="Write a debug log to this file")
    ] = None,
) -> None:
    """Create a clip from timestamps or a dialogue quote.

    Examples:

        gifclip clip "https://youtu.be/..." 1:30 1:45

        gifclip clip movie.mkv --from "hello there" --to "general kenobi"
    """
    configure_logging(LogConfig(level=verbosity_from_flags(verbose, quiet), log_file=log_file))

    try:
        settings = load_settings()
        options = RenderOptions(
            format=output_format or OutputFormat(settings.default_format),
            width=width if width is not None else settings.default_width,
            fps=fps if fps is not None else settings.default_fps,
            quality=quality if quality is not None else settings.default_quality,
        )

        if to_text is not None and from_text is None:
            raise ValidationError("--to requires --from")
        dialogue = None
        if from_text is not None:
            dialogue = DialogueQuery(
                from_text=from_text,
                to_text=to_text,
                pad=pad,
                pad_before=pad_before,
                pad_after=pad_after,
            )
        elif any(value is not None for value in (pad, pad_before, pad_after)):
            logger.warning("Padding only applies to dialogue clips, ignoring")

        kind = detect_input_kind(source)
        request = ClipRequest(
            source=source,
            input_kind=kind,
            start=start,
            end=end,
            dialogue=dialogue,
            subs_override=subs,
            no_subs=no_subs,
            lang=lang or settings.default_lang,
            text=text,
        )
        # Reject bad timestamps before downloading anything
        if not request.is_dialogue:
            parse_timestamp(request.start)
            parse_timestamp(request.end)

        ffmpeg = create_ffmpeg_wrapper(settings)
        ytdlp = YtDlpClient(ffmpeg_path=ffmpeg.ffmpeg_path)

        with tempfile.TemporaryDirectory(prefix="gifclip_") as tmp:
            output_path = _run_clip(request, options, output, ffmpeg, ytdlp, Path(tmp))
    except PydanticValidationError as e:
        _fail(_as_validation_error(e))
    except GifclipError as e:
        _fail(e)

    console.print(f"[green]Created:[/green] {output_path}")


@app.command()
def setup(
    source: Annotated[
        Optional[ToolSource],
        typer.Option("--source", "-s", help="Where to get ffmpeg (system/managed)"),
    ] = None,
    ffmpeg_path: Annotated[
        Optional[Path], typer.Option("--ffmpeg", help="Use this ffmpeg binary")
    ] = None,
    ffprobe_path: Annotated[
        Optional[Path], typer.Option("--ffprobe", help="Use this ffprobe binary")
    ] = None,
) -> None:
    """Choose where gifclip gets its tools and save the settings."""
    try:
        settings = load_settings()
    except GifclipError as e:
        console.print(f"[yellow]Ignoring unreadable settings:[/yellow] {e}")
        settings = Settings()

    if source is None:
        console.print("\n[bold]Tool Configuration[/bold]")
        console.print("  - managed [dim]- ffmpeg bundled with imageio-ffmpeg[/dim]")
        console.print("  - system [dim]- ffmpeg from your PATH[/dim]")
        console.print()
        answer = typer.prompt(
            "Tool source (managed/system)",
            default=settings.tool_source.value,
        ).strip().lower()
        try:
            source = ToolSource(answer)
        except ValueError:
            console.print(f"[yellow]Unknown source '{answer}', using managed[/yellow]")
            source = ToolSource.MANAGED

    for path in (ffmpeg_path, ffprobe_path):
        if path is not None and not path.is_file():
            console.print(f"[red]Error:[/red] Not a file: {path}")
            raise typer.Exit(1)

    updates: dict[str, object] = {"tool_source": source}
    if ffmpeg_path is not None:
        updates["custom_ffmpeg_path"] = str(ffmpeg_path.resolve())
    if ffprobe_path is not None:
        updates["custom_ffprobe_path"] = str(ffprobe_path.resolve())
    settings = settings.model_copy(update=updates)

    try:
        path = save_settings(settings)
    except GifclipError as e:
        _fail(e)

    ffmpeg_info = get_ffmpeg_info(settings)
    console.print(Panel(
        f"[cyan]Tool source:[/cyan] {settings.tool_source.value}\n"
        + (f"[cyan]FFmpeg:[/cyan] v{ffmpeg_info.version} ({ffmpeg_info.source})"
           if ffmpeg_info.available
           else "[red]FFmpeg:[/red] Not found"),
        title="Settings saved",
    ))
    console.print(f"[dim]{path}[/dim]")


@app.command()
def check_deps() -> None:
    """Check and report on required dependencies.

    Exits with status 1 when ffmpeg is unavailable.
    """
    try:
        settings = load_settings()
    except GifclipError as e:
        _fail(e)

    report = get_dependency_report(settings)

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ffmpeg = report["ffmpeg"]
    if ffmpeg["available"]:
        table.add_row(
            "FFmpeg",
            f"[green]Available[/green] (v{ffmpeg['version']})",
            f"Source: {ffmpeg['source']}\n{ffmpeg['path']}",
        )
    else:
        table.add_row("FFmpeg", "[red]Not Found[/red]", "Install with: pip install imageio-ffmpeg")

    ffprobe = report["ffprobe"]
    if ffprobe["available"]:
        table.add_row("FFprobe", "[green]Available[/green]", str(ffprobe["path"]))
    else:
        table.add_row("FFprobe", "[yellow]Not Found[/yellow]", "Optional - used for duration probing")

    ytdlp = report["yt_dlp"]
    if ytdlp["available"]:
        table.add_row("yt-dlp", "[green]Installed[/green]", f"Version: {ytdlp['version']}")
    else:
        table.add_row("yt-dlp", "[red]Not Installed[/red]", "Install with: pip install yt-dlp")

    imageio = report["imageio_ffmpeg"]
    if imageio["available"]:
        table.add_row("imageio-ffmpeg", "[green]Installed[/green]", f"Version: {imageio['version']}")
    else:
        table.add_row(
            "imageio-ffmpeg", "[yellow]Not Installed[/yellow]", "Recommended: pip install imageio-ffmpeg"
        )

    platform_info = report["platform"]
    table.add_row("Platform", str(platform_info.get("system", "")), str(platform_info.get("machine", "")))

    console.print(table)
    console.print(f"\n[dim]Settings: {get_settings_path()}[/dim]")

    if not ffmpeg["available"]:
        console.print("\n[yellow]Tip:[/yellow] Run 'gifclip setup' or 'pip install imageio-ffmpeg'")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
