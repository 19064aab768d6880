"""Command-line interface: resolve paths or run the HTTP service."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from proc_canonicalize.config import ConfigError, load_config
from proc_canonicalize.errors import CanonicalizeError
from proc_canonicalize.paths import resolve

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18170


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proc-canonicalize",
        description="Canonicalize paths, preserving /proc/<pid>/root and /proc/<pid>/cwd.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log namespace detection and symlink hops to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser(
        "resolve", help="Print the canonical form of each path."
    )
    resolve_parser.add_argument("paths", nargs="+", help="Paths to canonicalize.")
    resolve_parser.add_argument(
        "--json",
        action="store_true",
        help="Print one JSON object per path with status and preserved prefix.",
    )
    resolve_parser.add_argument(
        "--simplify-windows-paths",
        action="store_true",
        default=None,
        help="Drop the \\\\?\\ prefix from Windows results when it is not required.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP tool service.")
    serve_parser.add_argument("--host", default=DEFAULT_HOST, help="Bind address.")
    serve_parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help="Bind port."
    )
    return parser


def _run_resolve(args: argparse.Namespace) -> int:
    simplify = args.simplify_windows_paths
    if simplify is None:
        try:
            simplify = load_config().simplify_windows_paths
        except ConfigError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2

    for raw_path in args.paths:
        try:
            result = resolve(raw_path, simplify_windows_paths=simplify)
        except CanonicalizeError as exc:
            print(f"ERROR: {exc.error.code}: {raw_path}: {exc}", file=sys.stderr)
            return 1
        if args.json:
            print(json.dumps(result.to_dict(), sort_keys=True))
        else:
            print(result.path)
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("proc_canonicalize.main:app", host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command == "serve":
        return _run_serve(args)
    return _run_resolve(args)


if __name__ == "__main__":
    sys.exit(main())
