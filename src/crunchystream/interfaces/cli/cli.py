from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections import deque
from collections.abc import Iterable
from pathlib import Path
from typing import Any, BinaryIO

import structlog

from crunchystream.domain.entities.segment import Segment, SegmentPlan
from crunchystream.domain.entities.stream import NO_HARDSUB, StreamHandle
from crunchystream.domain.entities.variant import Variant
from crunchystream.domain.exceptions import CrunchyError, InputError
from crunchystream.infrastructure.config import AppConfig, load_config
from crunchystream.infrastructure.logging.setup import configure_logging
from crunchystream.interfaces.composition import (
    MEDIA_TYPES,
    Crunchyroll,
    CrunchyrollBuilder,
)

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="crunchystream")

    parser.add_argument("media_id", help="Id of the episode/movie/music video/concert.")
    parser.add_argument(
        "--media-type",
        default="episode",
        choices=sorted(MEDIA_TYPES),
        help="Kind of media the id refers to.",
    )

    # Login (anonymous if none given)
    login = parser.add_mutually_exclusive_group()
    login.add_argument(
        "--etp-rt",
        default=None,
        help="Log in with an etp_rt cookie (or CRUNCHYSTREAM_ETP_RT env).",
    )
    login.add_argument(
        "--refresh-token",
        default=None,
        help="Log in with a refresh token (or CRUNCHYSTREAM_REFRESH_TOKEN env).",
    )
    login.add_argument("--username", default=None, help="Account email/username.")
    parser.add_argument(
        "--password",
        default=None,
        help="Account password (or CRUNCHYSTREAM_PASSWORD env).",
    )

    # Stream selection
    parser.add_argument(
        "--hardsub",
        default=NO_HARDSUB,
        help="Hardsub locale of the manifest to use (default: none).",
    )
    parser.add_argument(
        "--no-drm",
        action="store_true",
        help="Negotiate on the endpoint that may serve unprotected streams.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List variants, hardsubs and subtitles instead of downloading.",
    )
    parser.add_argument(
        "--kind",
        default="video",
        choices=["video", "audio"],
        help="Variant kind to download.",
    )
    parser.add_argument(
        "--variant",
        default=None,
        type=int,
        help="Index from --list (default: highest bandwidth of --kind).",
    )
    parser.add_argument(
        "--subtitle",
        default=None,
        help="Also write the subtitle of this locale next to --output.",
    )
    parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Output file for the concatenated segments.",
    )

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--concurrency",
        default=None,
        type=int,
        help="Parallel segment downloads (overrides config).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    args = parser.parse_args(argv)
    if args.username and not (args.password or os.getenv("CRUNCHYSTREAM_PASSWORD")):
        parser.error("--username requires --password")
    if not args.list and not args.output:
        parser.error("--output is required unless --list is given")
    return args


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


async def _login(args: argparse.Namespace, config: AppConfig) -> Crunchyroll:
    builder = CrunchyrollBuilder(config)
    etp_rt = args.etp_rt or os.getenv("CRUNCHYSTREAM_ETP_RT")
    refresh_token = args.refresh_token or os.getenv("CRUNCHYSTREAM_REFRESH_TOKEN")
    if args.username:
        password = args.password or os.getenv("CRUNCHYSTREAM_PASSWORD", "")
        return await builder.login_with_credentials(args.username, password)
    if refresh_token:
        return await builder.login_with_refresh_token(refresh_token)
    if etp_rt:
        return await builder.login_with_etp_rt(etp_rt)
    return await builder.login_anonymously()


def _describe(index: int, variant: Variant) -> str:
    d = variant.descriptor
    if d.kind == "video":
        extra = f"{d.resolution} @ {d.fps:g}fps"
    else:
        extra = f"{d.sampling_rate}Hz"
    drm = " drm" if d.drm is not None else ""
    return f"[{index}] {d.kind:5} {d.bandwidth:>9} bps  {extra}  {d.codecs}{drm}"


def _print_listing(handle: StreamHandle, variants: list[Variant]) -> None:
    print(f"audio: {handle.audio_locale or '-'}  drm: {handle.drm}")
    print(f"hardsubs: {', '.join(handle.hardsub_locales()) or '-'}")
    print(f"subtitles: {', '.join(sorted(handle.subtitles)) or '-'}")
    print(f"versions: {', '.join(handle.available_versions()) or '-'}")
    for index, variant in enumerate(variants):
        print(_describe(index, variant))


def _select(variants: list[Variant], kind: str, index: int | None) -> Variant:
    if index is not None:
        if not 0 <= index < len(variants):
            raise InputError(f"variant index {index} out of range 0..{len(variants) - 1}")
        return variants[index]
    candidates = [v for v in variants if v.kind == kind]
    if not candidates:
        raise InputError(f"stream has no {kind} variants")
    return max(candidates, key=lambda v: v.descriptor.bandwidth)


def _write(sink: BinaryIO, data: bytes) -> int:
    try:
        sink.write(data)
    except OSError as exc:
        raise InputError(f"failed to write output: {exc}") from exc
    return len(data)


async def _download(
    variant: Variant, plan: SegmentPlan, sink: BinaryIO, concurrency: int
) -> int:
    """Fetch segments in parallel and write them to ``sink`` in plan order."""
    semaphore = asyncio.Semaphore(concurrency)

    async def _fetch(segment: Segment) -> bytes:
        async with semaphore:
            return await variant.fetch_and_decrypt(segment)

    pending: deque[asyncio.Task[bytes]] = deque()
    written = 0
    try:
        for segment in plan:
            pending.append(asyncio.create_task(_fetch(segment)))
            if len(pending) >= concurrency * 2:
                written += _write(sink, await pending.popleft())
        while pending:
            written += _write(sink, await pending.popleft())
    finally:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    return written


async def _write_subtitle(handle: StreamHandle, locale: str, output: Path) -> None:
    subtitle = handle.subtitles.get(locale) or handle.captions.get(locale)
    if subtitle is None:
        raise InputError(f"no subtitle for locale {locale!r}")
    path = output.with_name(f"{output.name}.{locale}.{subtitle.format or 'txt'}")
    with path.open("wb") as sink:
        size = await subtitle.write_to(sink)
    log.info("subtitle_written", locale=locale, path=str(path), size=size)


async def _run(args: argparse.Namespace, config: AppConfig) -> None:
    async with await _login(args, config) as client:
        media = await client.media_from_id(MEDIA_TYPES[args.media_type], args.media_id)
        if args.no_drm:
            handle = await media.stream_maybe_without_drm()
        else:
            handle = await media.stream()

        try:
            variants = await handle.variants(args.hardsub)
            if args.list:
                _print_listing(handle, variants)
                return

            variant = _select(variants, args.kind, args.variant)
            if variant.descriptor.drm is not None:
                log.warning("variant_drm_protected", media_id=args.media_id)
            plan = await variant.segments()

            output = Path(args.output)
            with output.open("wb") as sink:
                written = await _download(variant, plan, sink, config.concurrency)
            log.info(
                "download_finished",
                path=str(output),
                segments=len(plan),
                size=written,
            )
            if args.subtitle:
                await _write_subtitle(handle, args.subtitle, output)
        finally:
            await handle.invalidate()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def start(argv: Iterable[str] | None = None) -> int:
    """Process entrypoint."""

    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.concurrency is not None:
        cli_overrides["concurrency"] = args.concurrency
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    try:
        asyncio.run(_run(args, config))
    except CrunchyError as exc:
        log.error("crunchystream_failed", error=str(exc), error_type=type(exc).__name__)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(start())
