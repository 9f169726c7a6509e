"""
Docucast CLI
============
Terminal command surface for converting documents and playing the result.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from docucast.app.config import AppConfig
from docucast.app.controller import ConversionJobController, ConversionRequest
from docucast.app.events import Cancelled, Completed, PlayState, SynthesisStyle
from docucast.cli.render import describe_job_state, describe_playback_state, format_clock
from docucast.errors import SubmitError
from docucast.playback.controller import PlaybackController
from docucast.playback.engine import MediaEngine
from docucast.remote.base import RemoteConversionClient
from docucast.remote.factory import ClientFactory
from docucast.voices import SPEED_PRESETS, VOICES

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def default_engine_factory(config: AppConfig) -> MediaEngine:
    # Imported lazily: sounddevice needs PortAudio at import time
    from docucast.playback.sounddevice_engine import SoundDeviceEngine

    return SoundDeviceEngine(cache_dir=config.cache_dir)


def default_client_factory(config: AppConfig) -> RemoteConversionClient:
    return ClientFactory.create(config.client_name, config)


@dataclass
class CliContext:
    """Collaborators shared by command handlers."""
    config: AppConfig
    client_factory: Callable[[AppConfig], RemoteConversionClient] = default_client_factory
    engine_factory: Callable[[AppConfig], MediaEngine] = default_engine_factory


def _parse_rate(value: str) -> float:
    if value in SPEED_PRESETS:
        return SPEED_PRESETS[value]
    try:
        return float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"rate must be a number or one of: {', '.join(SPEED_PRESETS)}"
        )


def build_parser() -> argparse.ArgumentParser:
    """Create the root CLI parser."""
    parser = argparse.ArgumentParser(prog="docucast", description="Docucast: PDF to two-voice narration")
    parser.add_argument("--env-file", default=".env", help="Path to .env file (default: .env). Use empty to disable.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # convert
    convert_parser = subparsers.add_parser("convert", help="Convert a PDF (URL or file) into narrated audio")
    convert_parser.add_argument("source", help="PDF URL or local path")
    convert_parser.add_argument("--voice1", help="First host voice (default from config)")
    convert_parser.add_argument("--voice2", help="Second host voice (default from config)")
    convert_parser.add_argument(
        "--style",
        choices=[s.value for s in SynthesisStyle],
        help="Narration style (default: podcast)",
    )
    convert_parser.add_argument("--play", action="store_true", help="Play the audio when conversion completes")
    convert_parser.set_defaults(handler=handle_convert)

    # play
    play_parser = subparsers.add_parser("play", help="Play an audio URL or file")
    play_parser.add_argument("audio", help="Audio URL or local path")
    play_parser.add_argument("--rate", type=_parse_rate, default=1.0, help="Playback speed or preset name")
    play_parser.add_argument("--start", type=float, default=0.0, help="Start position in seconds")
    play_parser.set_defaults(handler=handle_play)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List host voices and narration styles")
    voices_parser.set_defaults(handler=handle_voices)

    return parser


def _print(msg: str, out: TextIO) -> None:
    out.write(msg + "\n")
    out.flush()


async def handle_convert(args: argparse.Namespace, ctx: CliContext, out: TextIO) -> int:
    """Submit a conversion and stream its states to the terminal."""
    config = ctx.config
    if not config.has_credentials:
        _print(f"error: missing credentials: {', '.join(config.missing_credentials)}", out)
        return EXIT_USAGE

    try:
        request = ConversionRequest(
            source=args.source,
            voice_1=args.voice1 or config.default_voice_1,
            voice_2=args.voice2 or config.default_voice_2,
            style=args.style or config.default_style,
        )
    except ValueError as exc:
        _print(f"error: {exc}", out)
        return EXIT_USAGE

    client = ctx.client_factory(config)
    controller = ConversionJobController(client, config)
    try:
        try:
            handle = controller.submit(request)
        except SubmitError as exc:
            _print(f"error: failed to start conversion: {exc}", out)
            return EXIT_FAILED

        _print(f"started job: {handle.local_id}", out)
        _print("press Ctrl+C to cancel", out)

        final_state = handle.state
        try:
            async for state in handle.observe():
                final_state = state
                _print(describe_job_state(state), out)
        except asyncio.CancelledError:
            controller.cancel()
            _print("conversion cancelled", out)
            return EXIT_INTERRUPTED
    finally:
        await controller.shutdown()
        await client.aclose()

    if isinstance(final_state, Completed):
        _print(f"audio: {final_state.audio_url}", out)
        if args.play:
            return await _play(final_state.audio_url, ctx, out)
        return EXIT_OK
    if isinstance(final_state, Cancelled):
        return EXIT_INTERRUPTED
    return EXIT_FAILED


async def _play(source: str, ctx: CliContext, out: TextIO, rate: float = 1.0, start: float = 0.0) -> int:
    config = ctx.config
    controller = PlaybackController(
        ctx.engine_factory(config),
        tick_interval=config.tick_interval,
        skip_seconds=config.skip_seconds,
    )
    try:
        try:
            controller.set_rate(rate)
        except ValueError as exc:
            _print(f"error: {exc}", out)
            return EXIT_USAGE

        _print(f"loading {source}", out)
        if not await controller.load(source):
            error = controller.state.error
            _print(f"error: {error.message if error else 'audio load failed'}", out)
            return EXIT_FAILED

        if start:
            duration = controller.state.duration
            if start >= duration:
                _print(f"error: --start {start:g}s is past the end of the audio ({format_clock(duration)})", out)
                return EXIT_USAGE
            controller.seek(start)
        controller.play()

        sub = controller.observe_state()
        try:
            async for state in sub:
                out.write("\r" + describe_playback_state(state))
                out.flush()
                if state.play_state is PlayState.ENDED:
                    break
        except asyncio.CancelledError:
            out.write("\n")
            _print("playback stopped", out)
            return EXIT_INTERRUPTED
        finally:
            sub.close()
        out.write("\n")
        return EXIT_OK
    finally:
        controller.release()


async def handle_play(args: argparse.Namespace, ctx: CliContext, out: TextIO) -> int:
    """Play an audio asset with a live position readout."""
    return await _play(args.audio, ctx, out, rate=args.rate, start=args.start)


async def handle_voices(args: argparse.Namespace, ctx: CliContext, out: TextIO) -> int:
    """List voice presets and styles."""
    _print("voices:", out)
    for voice in VOICES.values():
        marker = ""
        if voice.id == ctx.config.default_voice_1:
            marker = " (default voice 1)"
        elif voice.id == ctx.config.default_voice_2:
            marker = " (default voice 2)"
        _print(f"  - {voice.id}: {voice.name}, {voice.accent} {voice.gender}, {voice.style}{marker}", out)
    _print("styles: " + ", ".join(s.value for s in SynthesisStyle), out)
    return EXIT_OK


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main(
    argv: Optional[list[str]] = None,
    context_factory: Optional[Callable[[argparse.Namespace], CliContext]] = None,
    out: TextIO = sys.stdout,
) -> int:
    """
    CLI entrypoint.

    Args:
        argv: Optional argv override for testing.
        context_factory: Dependency-injection hook for tests.
        out: Output stream.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if context_factory is None:
        try:
            context = CliContext(config=AppConfig.from_env(args.env_file or None))
        except ValueError as exc:
            _print(f"config error: {exc}", out)
            return EXIT_USAGE
    else:
        context = context_factory(args)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(file=out)
        return EXIT_USAGE

    try:
        return int(asyncio.run(handler(args, context, out)))
    except KeyboardInterrupt:
        _print("\ninterrupted", out)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
