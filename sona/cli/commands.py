"""
Command-line interface for Sona.

Thin adapter over the core pipeline: parse arguments, build the pipeline
from config, print progress and a one-line result.
"""

from pathlib import Path
from typing import Optional

import typer

from sona.core.assemblyai import AssemblyAIClient, verify_api_key
from sona.core.config import AppConfig, KNOWN_KEYS
from sona.core.constants import API_KEY_ENV, APP_VERSION, DEFAULT_SPEECH_MODEL, LOG_PATH, SPEECH_MODELS
from sona.core.diagnostics import get_diagnostics
from sona.core.error_codes import JobError
from sona.core.models import RunOptions, SourceDescriptor, SourceKind, VideoMetadata
from sona.core.pipeline import TranscriptionPipeline
from sona.core.security_utils import mask_api_key
from sona.core.url_parse import classify_source, is_youtube_url
from sona.core.yt_metadata import format_duration


app = typer.Typer(
    name="sona",
    help="Sona: convert audio files and YouTube videos to text using AssemblyAI.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Manage configuration settings.", no_args_is_help=True)
app.add_typer(config_app, name="config")


@app.callback()
def root(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", envvar="SONA_CONFIG", help="Path to config.json (default: ~/.sona/config.json)"
    ),
) -> None:
    ctx.obj = AppConfig(config)


def build_pipeline(cfg: AppConfig, api_key: str) -> TranscriptionPipeline:
    client = AssemblyAIClient(
        api_key,
        poll_interval=cfg.poll_interval,
        max_poll_attempts=cfg.max_poll_attempts,
    )
    return TranscriptionPipeline(
        client,
        output_root=cfg.output_root,
        cookies_path=cfg.cookies_path,
    )


def _print_missing_key() -> None:
    typer.echo(typer.style("Error: AssemblyAI API key not found!", fg=typer.colors.RED, bold=True), err=True)
    typer.echo("Please set it using one of these methods:", err=True)
    typer.echo(f"1. Set environment variable: export {API_KEY_ENV}='your_key_here'", err=True)
    typer.echo("2. Use config command: sona config set api_key 'your_key_here'", err=True)


def _show_metadata(metadata: VideoMetadata) -> None:
    if metadata.title:
        typer.echo(f"Video: {metadata.title}")
    if metadata.duration:
        typer.echo(f"Duration: {format_duration(metadata.duration)}")


@app.command()
def transcribe(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="YouTube URL or path to a local audio/video file"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file path (default: auto-generated)"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help=f"Speech model to use ({', '.join(SPEECH_MODELS)})"
    ),
    no_convert: bool = typer.Option(
        False, "--no-convert", help="Upload local files as-is instead of converting to MP3"
    ),
) -> None:
    """
    Transcribe audio from a YouTube video or a local file.
    """
    cfg: AppConfig = ctx.obj
    api_key = cfg.get_api_key()
    if not api_key:
        _print_missing_key()
        raise typer.Exit(code=1)

    descriptor = classify_source(source)
    options = RunOptions(
        model=model or cfg.speech_model,
        output_path=output,
        convert_local=cfg.convert_local and not no_convert,
    )

    _run_pipeline(cfg, api_key, descriptor, options)


def _run_pipeline(cfg: AppConfig, api_key: str, descriptor: SourceDescriptor,
                  options: RunOptions) -> None:
    typer.echo(f"Source: {descriptor.value}")
    typer.echo("Processing YouTube URL..." if descriptor.is_youtube else "Processing local audio file...")

    try:
        pipeline = build_pipeline(cfg, api_key)
        pipeline.on_stage = lambda stage, message: typer.echo(message)
        pipeline.on_metadata = _show_metadata
        result = pipeline.run(descriptor, options)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user.", err=True)
        raise typer.Exit(code=130)
    except JobError as exc:
        typer.echo(typer.style(f"Error: {exc.message}", fg=typer.colors.RED), err=True)
        if exc.retryable:
            typer.echo("This looks transient; re-running the command may succeed.", err=True)
        typer.echo(f"Details in {LOG_PATH}", err=True)
        raise typer.Exit(code=1)

    typer.echo(typer.style("Transcription completed successfully", fg=typer.colors.GREEN, bold=True))
    typer.echo(f"Saved to: {result.destination_path} ({len(result.text)} chars)")


# ── Interactive mode ──────────────────────────────────────────────────

_SOURCE_CHOICES = {"1": SourceKind.YOUTUBE, "2": SourceKind.LOCAL}
_MODEL_NOTES = {
    "slam-1": "best accuracy",
    "best": "good for most use cases",
    "nano": "fastest",
}


@app.command()
def interactive(ctx: typer.Context) -> None:
    """
    Guided transcription: prompts for the source, output path and model,
    remembering the answers as defaults for next time.
    """
    cfg: AppConfig = ctx.obj
    typer.echo("Sona turns audio files and YouTube videos into text.")

    api_key = cfg.get_api_key() or _prompt_api_key(cfg)
    last = cfg.last_session()

    kind = _prompt_source_kind(last.get('source_type'))
    source = _prompt_source(kind)
    output_path = _prompt_output_path(last.get('output_path') or "")
    model = _prompt_model(last.get('speech_model'))

    typer.echo("\nSummary of settings:")
    typer.echo(f"Source type: {kind.value}")
    typer.echo(f"Source: {source}")
    typer.echo(f"Output path: {output_path or '[default]'}")
    typer.echo(f"Speech model: {model}")
    if not typer.confirm("\nProceed with these settings?", default=False):
        typer.echo("Operation canceled")
        raise typer.Exit()

    try:
        cfg.save_last_session(kind.value, model, output_path)
    except OSError as exc:
        typer.echo(f"Warning: could not save session defaults: {exc}", err=True)

    options = RunOptions(
        model=model,
        output_path=Path(output_path) if output_path else None,
        convert_local=cfg.convert_local,
    )
    _run_pipeline(cfg, api_key, SourceDescriptor(kind=kind, value=source), options)


def _prompt_api_key(cfg: AppConfig) -> str:
    typer.echo("\nNo AssemblyAI API key found. You need one to use this tool.")
    typer.echo("You can get one for free at https://www.assemblyai.com/")
    api_key = ""
    while not api_key:
        api_key = typer.prompt("AssemblyAI API key", hide_input=True).strip()
    if typer.confirm("Save this API key for future use?", default=False):
        cfg.set('api_key', api_key)
        typer.echo("API key saved")
    return api_key


def _prompt_source_kind(last_type: str | None) -> SourceKind:
    typer.echo("\nWhat type of source would you like to transcribe?")
    typer.echo("1. YouTube video")
    typer.echo("2. Local audio file")
    default = {kind.value: choice for choice, kind in _SOURCE_CHOICES.items()}.get(last_type)
    while True:
        choice = typer.prompt("Enter your choice (1 or 2)", default=default).strip()
        if choice in _SOURCE_CHOICES:
            return _SOURCE_CHOICES[choice]
        typer.echo("Invalid choice. Please enter 1 or 2.")


def _prompt_source(kind: SourceKind) -> str:
    label = "Enter YouTube URL" if kind is SourceKind.YOUTUBE else "Enter path to audio file"
    while True:
        value = typer.prompt(label).strip()
        if kind is SourceKind.YOUTUBE and not is_youtube_url(value):
            typer.echo("Invalid YouTube URL. Please enter a valid URL.")
        elif kind is SourceKind.LOCAL and not Path(value).expanduser().is_file():
            typer.echo("File not found. Please enter a valid path.")
        else:
            return value


def _prompt_output_path(last_path: str) -> str:
    return typer.prompt(
        "Output path (leave blank for default)",
        default=last_path,
        show_default=bool(last_path),
    ).strip()


def _prompt_model(last_model: str | None) -> str:
    typer.echo("\nSelect speech model:")
    choices = {str(i): name for i, name in enumerate(SPEECH_MODELS, start=1)}
    for choice, name in choices.items():
        typer.echo(f"{choice}. {name} ({_MODEL_NOTES.get(name, '')})")

    default = next((c for c, name in choices.items() if name == last_model), "1")
    choice = typer.prompt(f"Enter your choice (1-{len(choices)})", default=default).strip()
    if choice in choices:
        return choices[choice]
    typer.echo(f"Invalid choice. Using default model ({DEFAULT_SPEECH_MODEL}).")
    return DEFAULT_SPEECH_MODEL


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help=f"One of: {', '.join(KNOWN_KEYS)}"),
    value: str = typer.Argument(...),
) -> None:
    """Set a configuration value."""
    cfg: AppConfig = ctx.obj
    try:
        cfg.set(key, value)
    except KeyError:
        typer.echo(f"Unknown config key: {key}", err=True)
        raise typer.Exit(code=1)
    except OSError as exc:
        typer.echo(f"Error saving config: {exc}", err=True)
        raise typer.Exit(code=1)

    shown = mask_api_key(value) if key == 'api_key' else cfg.get(key)
    typer.echo(f"Saved {key} = {shown}")


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show current configuration."""
    cfg: AppConfig = ctx.obj
    typer.echo("Current Configuration:")
    for key in KNOWN_KEYS:
        value = cfg.get(key)
        if key == 'api_key':
            value = mask_api_key(cfg.get_api_key())
        typer.echo(f"  {key}: {value}")
    typer.echo(f"Config File: {cfg.path}")


@app.command()
def status(
    ctx: typer.Context,
    verify_key: bool = typer.Option(False, "--verify-key", help="Check the API key against AssemblyAI"),
) -> None:
    """Check system status and dependencies."""
    cfg: AppConfig = ctx.obj
    api_key = cfg.get_api_key()
    diag = get_diagnostics(cfg.output_root, api_key)

    typer.echo("Sona System Status")
    typer.echo("==================")

    typer.echo("\n1. YouTube Download (yt-dlp):")
    if diag["ytdlp_path"]:
        typer.echo(f"   Available at: {diag['ytdlp_path']} ({diag['ytdlp_version']})")
    else:
        typer.echo("   Not found")

    typer.echo("\n2. Audio Processing (FFmpeg):")
    if diag["ffmpeg_path"]:
        typer.echo(f"   FFmpeg available at: {diag['ffmpeg_path']}")
        typer.echo(f"   {diag['ffmpeg_version']}")
    else:
        typer.echo("   Not found")
    if diag["ffprobe_path"]:
        typer.echo(f"   ffprobe available at: {diag['ffprobe_path']}")

    typer.echo("\n3. AssemblyAI API Key:")
    if not api_key:
        typer.echo("   Not configured")
        typer.echo("   Run 'sona config set api_key <YOUR_KEY>' to set it")
    elif verify_key:
        ok, message = verify_api_key(api_key)
        typer.echo(f"   Configured ({message})")
    else:
        typer.echo("   Configured")

    typer.echo("\n4. Default Output Directory:")
    out = diag["output_dir"]
    typer.echo(f"   {out['path']}")
    if out["writable"]:
        typer.echo("   Directory exists and is writable")
    elif out["exists"]:
        typer.echo("   Directory exists but may not be writable")
    else:
        typer.echo("   Directory does not exist (will be created automatically)")


@app.command()
def version() -> None:
    """Print the version."""
    typer.echo(f"sona {APP_VERSION}")
