"""CLI entrypoints for rendering screens, welcome images, cleanup, and diagnostics."""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict
from pathlib import Path

from inker_core import (
    AppConfig,
    ContentLocator,
    ScreenContentService,
    build_doctor_payload,
    build_renderer,
    load_config,
    probe_renderer,
)
from inker_core.logging_setup import configure_logging
from inker_renderer import InkerError, RenderRequest, SourceKind


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _load(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(Path(args.config).expanduser() if args.config else None)
    if args.screens_dir:
        cfg.storage.screens_dir = args.screens_dir
    return cfg


def _locator_json(locator: ContentLocator) -> dict[str, object]:
    payload = asdict(locator)
    payload["success"] = True
    return payload


def _error_payload(kind: str, message: str, retryable: bool = False) -> dict[str, object]:
    return {"success": False, "error": kind, "message": message, "retryable": retryable}


def _request(args: argparse.Namespace) -> RenderRequest | None:
    if args.command == "render-html":
        payload: str | bytes = Path(args.file).read_text(encoding="utf-8")
        source = SourceKind.HTML
    elif args.command == "render-url":
        payload, source = args.url, SourceKind.URL
    elif args.command == "render-image":
        payload, source = Path(args.file).read_bytes(), SourceKind.IMAGE
    else:
        return None
    return RenderRequest(source=source, payload=payload, width=args.width, height=args.height, color_depth=args.colors)


async def _run_pipeline(args: argparse.Namespace, request: RenderRequest | None) -> ContentLocator:
    cfg = args.cfg
    async with build_renderer(cfg) as renderer:
        service = ScreenContentService.from_config(cfg, renderer=renderer)
        if request is not None:
            return await service.render(request)
        return await service.welcome_screen(args.name, args.device_id, args.width, args.height, args.colors)


def cmd_pipeline(args: argparse.Namespace) -> int:
    try:
        request = _request(args)
    except (OSError, UnicodeDecodeError) as exc:
        _print_json(_error_payload("InputError", f"cannot read {args.file}: {exc}"))
        return 2
    try:
        locator = asyncio.run(_run_pipeline(args, request))
    except InkerError as exc:
        _print_json(_error_payload(exc.kind, str(exc), exc.retryable))
        return 2
    _print_json(_locator_json(locator))
    return 0


def cmd_cleanup(args: argparse.Namespace) -> int:
    service = ScreenContentService.from_config(args.cfg)
    service.remove_artifacts(args.image_url, args.thumbnail_url)
    _print_json({"success": True, "image_url": args.image_url, "thumbnail_url": args.thumbnail_url})
    return 0


async def _doctor(cfg: AppConfig, check_browser: bool) -> dict[str, object]:
    status = None
    if check_browser:
        async with build_renderer(cfg) as renderer:
            status = await probe_renderer(renderer)
    return build_doctor_payload(cfg, status)


def cmd_doctor(args: argparse.Namespace) -> int:
    _print_json(asyncio.run(_doctor(args.cfg, not args.skip_browser)))
    return 0


def _add_target_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--width", type=int, default=800)
    cmd.add_argument("--height", type=int, default=480)
    cmd.add_argument("--colors", type=int, default=2, help="Panel color depth; 2 enables dithering")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inker", description="E-ink screen rendering tools")
    parser.add_argument("--config", default=None, help="Path to config JSON")
    parser.add_argument("--screens-dir", default=None, help="Override artifact output directory")
    parser.add_argument("--verbose", action="store_true", help="Log to console")
    sub = parser.add_subparsers(dest="command", required=True)

    html_cmd = sub.add_parser("render-html", help="Render an HTML file into a screen image")
    html_cmd.add_argument("--file", required=True, help="HTML file to render")
    _add_target_args(html_cmd)
    html_cmd.set_defaults(func=cmd_pipeline)

    url_cmd = sub.add_parser("render-url", help="Render a web page into a screen image")
    url_cmd.add_argument("--url", required=True)
    _add_target_args(url_cmd)
    url_cmd.set_defaults(func=cmd_pipeline)

    image_cmd = sub.add_parser("render-image", help="Convert an uploaded image into a screen image")
    image_cmd.add_argument("--file", required=True, help="Image file to convert")
    _add_target_args(image_cmd)
    image_cmd.set_defaults(func=cmd_pipeline)

    welcome_cmd = sub.add_parser("welcome", help="Generate the welcome screen for a device")
    welcome_cmd.add_argument("--name", required=True, help="Device name")
    welcome_cmd.add_argument("--device-id", required=True, help="Device friendly id")
    _add_target_args(welcome_cmd)
    welcome_cmd.set_defaults(func=cmd_pipeline)

    cleanup_cmd = sub.add_parser("cleanup", help="Delete a screen's image and thumbnail")
    cleanup_cmd.add_argument("--image-url", default=None)
    cleanup_cmd.add_argument("--thumbnail-url", default=None)
    cleanup_cmd.set_defaults(func=cmd_cleanup)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics and renderer availability")
    doctor_cmd.add_argument("--skip-browser", action="store_true", help="Do not try to launch the browser")
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.cfg = _load(args)
    configure_logging(args.cfg.logging, console=args.verbose)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
