"""RU: Командная строка stopmotion-export.

EN: stopmotion-export command line.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from tqdm import tqdm

from stopmotion_export import __version__
from stopmotion_export.config import ExportSettings, load_config
from stopmotion_export.errors import ExportError
from stopmotion_export.ffmpeg.profiles import list_formats
from stopmotion_export.models import FrameReference
from stopmotion_export.pipeline import (
    ExportRequest,
    ExportSession,
    drain_sync,
    list_pending_sync,
    run_export,
    stage_buffer,
)
from stopmotion_export.qr import save_qr_image
from stopmotion_export.stages.staging import list_audio_tracks
from stopmotion_export.utils.logging_utils import setup_logging


def _load_frames(path: Path) -> tuple[FrameReference, ...]:
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("frames", [])
    if not isinstance(data, list):
        raise SystemExit(f"Frames file must hold a JSON list: {path}")
    return tuple(FrameReference.from_dict(item) for item in data if isinstance(item, dict))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="stopmotion-export",
        description="Export stop-motion frame sequences to video",
    )
    ap.add_argument("--version", action="version", version=__version__)
    ap.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    ap.add_argument("--quiet", action="store_true", help="Only errors")
    ap.add_argument("--verbose", action="store_true", help="Verbose logs")
    sub = ap.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("export", help="Encode a scene (or copy its frames)")
    ex.add_argument("--request", type=Path, help="JSON export request (replaces the flags below)")
    ex.add_argument("--project-id", help="Project folder under projects_root")
    ex.add_argument("--frames", type=Path, help="JSON list of frame references")
    ex.add_argument("--scene", default=0, help="Scene index (for its framerate)")
    ex.add_argument("--mode", choices=("video", "frames", "send"), default="video")
    ex.add_argument("--format", choices=list_formats(), default="h264")
    ex.add_argument("--output", help="Output file (or folder in frames mode)")
    ex.add_argument("--framerate", type=float, default=None, help="Input framerate")
    ex.add_argument("--output-framerate", type=float, default=None, help="Output framerate override")
    ex.add_argument("--ending-text", help="Append a title card with this text")
    ex.add_argument("--background-sound", help="Audio track name from the search path")
    ex.add_argument("--upload", action="store_true", help="Upload to Google Drive")
    ex.add_argument("--email", help="Send the Drive link to this address")
    ex.add_argument("--public-code", default="default", help="Send mode: public code")
    ex.add_argument("--event-key", default="", help="Send mode: event API key")
    ex.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    ex.add_argument("--qr", type=Path, help="File holding a PNG data URL to save as <base>.png")

    sb = sub.add_parser("stage-buffer", help="Store a raw frame buffer for a project")
    sb.add_argument("--project-id", required=True)
    sb.add_argument("--buffer-id", required=True)
    sb.add_argument("--file", type=Path, required=True, help="Image file to stage")

    qr = sub.add_parser("save-qr", help="Save a QR PNG data URL as <base-name>.png")
    qr.add_argument("--base-name", required=True, help="Export base name")
    qr.add_argument("--data-file", type=Path, required=True, help="File holding the data URL")

    sub.add_parser("sync-list", help="List pending deferred uploads")
    sub.add_parser("sync-drain", help="Retry pending deferred uploads")
    sub.add_parser("tracks", help="List selectable background audio tracks")
    sub.add_parser("formats", help="List supported output formats")
    return ap


def _build_request(args: argparse.Namespace) -> ExportRequest:
    if args.request is not None:
        with args.request.open(encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict) or not data.get("project_id"):
            raise SystemExit(f"Request file must hold a JSON object with project_id: {args.request}")
        return ExportRequest.from_dict(data)
    if not args.project_id or args.frames is None:
        raise SystemExit("export needs --request, or --project-id and --frames")
    return ExportRequest(
        project_id=args.project_id,
        scene_id=args.scene,
        frames=_load_frames(args.frames),
        mode=args.mode,
        format=args.format,
        custom_output_framerate=args.output_framerate is not None,
        custom_output_framerate_number=args.output_framerate,
        framerate=args.framerate,
        output_path=args.output,
        public_code=args.public_code,
        event_key=args.event_key,
        add_ending_text=bool(args.ending_text),
        ending_text=args.ending_text,
        upload_to_drive=bool(args.upload),
        user_email=args.email,
        background_sound=args.background_sound,
    )


def _cmd_export(args: argparse.Namespace, session: ExportSession, *, quiet: bool) -> int:
    request = _build_request(args)

    with tqdm(total=100, unit="%", desc="Export", disable=args.no_progress or quiet) as bar:

        def on_progress(value: float) -> None:
            bar.n = max(0, min(100, int(value * 100)))
            bar.refresh()

        outcome = run_export(request, session=session, on_progress=on_progress)

    print(outcome.output_path)
    if outcome.drive_link:
        print(outcome.drive_link)
    if args.qr is not None:
        print(
            save_qr_image(
                args.qr.read_text(encoding="utf-8"),
                outcome.export_base_name,
                session.settings.qr_save_dir,
            ),
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    conf = load_config(args.config)
    cli_conf = conf.get("cli", {}) if isinstance(conf.get("cli"), dict) else {}
    quiet = bool(args.quiet or cli_conf.get("quiet", False))
    settings = ExportSettings.from_conf(conf)
    session = ExportSession.from_settings(settings)

    try:
        if args.command == "export":
            return _cmd_export(args, session, quiet=quiet)
        if args.command == "stage-buffer":
            path = stage_buffer(
                settings.projects_root / args.project_id, args.buffer_id, args.file.read_bytes(),
            )
            print(path)
            return 0
        if args.command == "save-qr":
            print(
                save_qr_image(
                    args.data_file.read_text(encoding="utf-8"),
                    args.base_name,
                    settings.qr_save_dir,
                ),
            )
            return 0
        if args.command == "sync-list":
            for entry in list_pending_sync(settings.projects_root):
                print(f"{entry.public_code}\t{entry.file_name}")
            return 0
        if args.command == "sync-drain":
            done = drain_sync(settings.projects_root, session=session)
            print(f"uploaded {done}")
            return 0
        if args.command == "tracks":
            for name in list_audio_tracks(settings.audio_search_paths):
                print(name)
            return 0
        if args.command == "formats":
            for fmt in list_formats():
                print(fmt)
            return 0
    except ExportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
