"""Thin CLI entry point — builds a TrimRequest and runs a TrimJob."""

import argparse
import logging
import sys
from pathlib import Path

from cliptrim import ffutil, timecode
from cliptrim.errors import ValidationError
from cliptrim.job import TrimJob, TrimStatus
from cliptrim.manifest import Manifest, load_manifest
from cliptrim.models import MediaDescriptor, TimeWindow, TrimRequest
from cliptrim.validator import validate_media


def _probe_duration(path: Path) -> float:
    try:
        return ffutil.probe(path).duration
    except Exception as e:  # unknown duration is allowed
        logging.getLogger(__name__).warning("Could not probe %s: %s", path, e)
        return 0.0


def run_trim(manifest: Manifest) -> int:
    if not manifest.input.is_file():
        print(f"Error: input file not found: {manifest.input}", file=sys.stderr)
        return 1

    media = MediaDescriptor.from_filename(
        manifest.input.name, size_bytes=manifest.input.stat().st_size
    )
    # Reject on size and extension before reading the whole file into memory.
    try:
        validate_media(media, manifest.settings)
    except ValidationError as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 1

    data = manifest.input.read_bytes()
    media = MediaDescriptor.from_filename(
        manifest.input.name,
        size_bytes=len(data),
        duration_seconds=_probe_duration(manifest.input),
    )
    request = TrimRequest(media=media, window=TimeWindow(manifest.start, manifest.end))

    def on_status(status: TrimStatus) -> None:
        if not status.terminal:
            print(f"  [{status.progress:3.0%}] {status.text}")

    job = TrimJob(
        request,
        data,
        settings=manifest.settings,
        encode=manifest.encode,
        on_status=on_status,
    )
    final = job.run()

    if final.result is None:
        print(f"Error: {final.text}", file=sys.stderr)
        return 1

    output = manifest.resolved_output()
    output.write_bytes(final.result.artifact)
    window = final.result.window
    print()
    print(f"Done! Output: {output}")
    print(f"  Window: {timecode.format(window.start)} -> {timecode.format(window.end)}")
    print(f"  Strategy: {final.result.attempt_label}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="cliptrim",
        description="cliptrim — trim a local video to an MP4 clip.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    trim = sub.add_parser("trim", help="Trim a video file")
    trim.add_argument("video", nargs="?", type=Path, help="Input video file")
    trim.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    trim.add_argument("--output", "-o", type=Path, help="Output file path")
    trim.add_argument("--start", "-s", default="00:00:00", help="Start time (HH:MM:SS)")
    trim.add_argument("--end", "-e", default="00:00:00", help="End time (HH:MM:SS); 0 trims to the end")

    serve = sub.add_parser("serve", help="Launch the web UI")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from cliptrim.web import create_app
        app = create_app()
        print(f"cliptrim web UI: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    if args.manifest:
        m = load_manifest(args.manifest)
        if args.output:
            m.output = args.output
    elif args.video:
        m = Manifest(
            input=args.video,
            output=args.output,
            start=timecode.parse(args.start),
            end=timecode.parse(args.end),
        )
    else:
        print("Error: provide either a VIDEO argument or --manifest.", file=sys.stderr)
        sys.exit(1)

    sys.exit(run_trim(m))
