"""
Command line entry point.

compile
Update an inventory file up to a maximum version.
  release-inventory compile testdata/test_manifests.yaml v1.14.0 [--force]

detect
Resolve a multi document manifest file against an inventory.
  release-inventory detect testdata/test_manifests.yaml installed.yaml

Errors go to standard error and exit with status 1.
An ambiguous or unknown detection is a valid answer and exits with 0.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from release_inventory.compiler.compiler import InventoryCompiler
from release_inventory.core.errors import InventoryError
from release_inventory.core.types import MIN_VERSION, DetectionQuery, DetectionResult
from release_inventory.detect.detector import detect
from release_inventory.inventory import store
from release_inventory.source.base import ReleaseSource
from release_inventory.source.github import (
    DEFAULT_DOWNLOAD_URL,
    DEFAULT_REPO_URL,
    GitHubReleaseSource,
    GitTagLister,
    UrllibHttpClient,
)
from release_inventory.source.static import StaticReleaseSource


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-inventory",
        description="Fingerprint release manifests and detect installed versions.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="log level for messages on standard error",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    comp = sub.add_parser("compile", help="update an inventory file")
    comp.add_argument("inventory", type=Path)
    comp.add_argument("max_version")
    comp.add_argument("--force", action="store_true", help="refetch every listed version")
    comp.add_argument("--repo-url", default=DEFAULT_REPO_URL)
    comp.add_argument("--download-url", default=DEFAULT_DOWNLOAD_URL, help="template with {version}")
    comp.add_argument("--min-version", default=MIN_VERSION)
    comp.add_argument("--timeout", type=float, default=30.0, help="seconds per network call")
    comp.add_argument("--source-dir", type=Path, help="read <version>.yaml bundles from a directory")

    det = sub.add_parser("detect", help="detect the version of a manifest set")
    det.add_argument("inventory", type=Path)
    det.add_argument("manifests", type=Path)

    return parser


def _build_source(args: argparse.Namespace) -> ReleaseSource:
    if args.source_dir is not None:
        return StaticReleaseSource(directory=args.source_dir, min_version=args.min_version)

    return GitHubReleaseSource(
        repo_url=args.repo_url,
        download_url_template=args.download_url,
        min_version=args.min_version,
        http=UrllibHttpClient(timeout_seconds=args.timeout),
        tags=GitTagLister(timeout_seconds=args.timeout),
    )


def format_result(result: DetectionResult) -> str:
    """Human readable detection summary. Ambiguity is always spelled out."""
    if result.is_unknown:
        return "unknown: installed manifests match no cataloged release"
    if result.is_ambiguous:
        return "ambiguous: one of " + ", ".join(result.candidates)
    return f"detected: {result.detected}"


def _run_compile(args: argparse.Namespace) -> int:
    compiler = InventoryCompiler(source=_build_source(args))
    outcome = compiler.compile(args.inventory, args.max_version, force=args.force)

    latest = outcome.record.latest_version
    if outcome.changed:
        print(f"Updated inventory to version {latest}")
    else:
        print(f"Version {latest} is already the latest version")
    return 0


def _run_detect(args: argparse.Namespace) -> int:
    record = store.read(args.inventory)
    try:
        raw = args.manifests.read_bytes()
    except OSError as exc:
        print(f"error: failed to read {args.manifests}: {exc}", file=sys.stderr)
        return 1

    result = detect(DetectionQuery.from_yaml(raw), record)
    print(format_result(result))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.command == "compile":
            return _run_compile(args)
        return _run_detect(args)
    except InventoryError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
