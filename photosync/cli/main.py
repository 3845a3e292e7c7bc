"""
Main CLI entry point for photosync.

Runs sync jobs and photo uploads against a photo library server and prints
their progress as it streams in.
"""

import argparse
import json
import logging
import sys

from photosync import __version__

from .._client import PhotoSync
from .._errors import get_error_message, resolve_upgrade_category
from .._exceptions import AbortError, PhotoSyncError
from .._transports import CancelToken
from .._upload import DEFAULT_UPLOAD_TIMEOUT
from .display import create_display
from .util import CANCELLED_EXIT, cancel_on_signal, graceful_main, print_cancelled

_UPGRADE_HINTS = {
    "plan": "💡 This action needs a higher plan. Upgrade your subscription to continue.",
    "storage": "💡 Storage limit reached. Free up space or upgrade your storage plan.",
}


def create_client(args: argparse.Namespace) -> PhotoSync:
    return PhotoSync(
        api_key=args.api_key,
        base_url=args.base_url,
        language=args.language,
        upload_timeout=getattr(args, "timeout", None) or DEFAULT_UPLOAD_TIMEOUT,
    )


def _print_error(error: PhotoSyncError) -> None:
    print(f"❌ {get_error_message(error)}", file=sys.stderr)
    category = resolve_upgrade_category(error)
    if category is not None:
        print(_UPGRADE_HINTS[category], file=sys.stderr)


def _cmd_sync(client: PhotoSync, args: argparse.Namespace) -> int:
    display = create_display("json" if args.json else "compact")
    with cancel_on_signal(CancelToken()) as cancel:
        result = client.sync.run(args.dry_run, cancel=cancel, on_progress=display.on_event)
    display.show_result(result)
    return 0


def _cmd_upload(client: PhotoSync, args: argparse.Namespace) -> int:
    display = create_display("json" if args.json else "compact")
    with cancel_on_signal(CancelToken()) as cancel:
        client.assets.upload(
            args.paths,
            directory=args.directory,
            cancel=cancel,
            on_progress=display.on_upload_progress,
            on_server_event=display.on_event,
        )
    if not args.json:
        print(f"✅ Uploaded {len(args.paths)} file(s)")
    return 0


def _cmd_status(client: PhotoSync, args: argparse.Namespace) -> int:
    print(json.dumps(client.sync.status(), indent=2, default=str))
    return 0


def _cmd_conflicts(client: PhotoSync, args: argparse.Namespace) -> int:
    conflicts = client.sync.conflicts()
    if not conflicts:
        print("No conflicts")
        return 0
    print(json.dumps(conflicts, indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photosync",
        description="photosync - sync storage and upload photos to a photo library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global arguments
    parser.add_argument(
        "--api-key", help="API key (or set PHOTOSYNC_API_KEY environment variable)"
    )
    parser.add_argument(
        "--base-url", help="API base URL (or set PHOTOSYNC_BASE_URL environment variable)"
    )
    parser.add_argument("--language", help="Preferred language for server messages")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sync = subparsers.add_parser("sync", help="Run a storage sync job")
    sync.add_argument(
        "--dry-run", action="store_true", help="Preview the sync without applying changes"
    )
    sync.add_argument("--json", action="store_true", help="Print events as JSON lines")
    sync.set_defaults(handler=_cmd_sync)

    upload = subparsers.add_parser("upload", help="Upload photo files")
    upload.add_argument("paths", nargs="+", help="Files to upload")
    upload.add_argument("--directory", help="Target directory in the library")
    upload.add_argument(
        "--timeout", type=float, help="Give up after this many seconds (default: 600)"
    )
    upload.add_argument("--json", action="store_true", help="Print events as JSON lines")
    upload.set_defaults(handler=_cmd_upload)

    status = subparsers.add_parser("status", help="Show the current sync status")
    status.set_defaults(handler=_cmd_status)

    conflicts = subparsers.add_parser("conflicts", help="List unresolved sync conflicts")
    conflicts.set_defaults(handler=_cmd_conflicts)

    return parser


def _real_main(argv: list[str]) -> int:
    """Real main CLI logic that handles command parsing and execution."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        client = create_client(args)
        return int(args.handler(client, args))
    except AbortError:
        print_cancelled()
        return CANCELLED_EXIT
    except PhotoSyncError as e:
        _print_error(e)
        return 1
    except OSError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point with graceful interrupt handling."""
    return graceful_main(_real_main, sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
