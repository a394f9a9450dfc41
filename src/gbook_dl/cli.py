from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .http_client import HttpClient, build_session
from .pipeline import BATCH_COOLDOWN_S, DocumentPipeline, DownloadConfig, read_document_ids
from .urls import DEFAULT_BASE_URL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    # Keep per-request noise out unless explicitly asked for.
    if level.upper() != "DEBUG":
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gbook-dl",
        description="Download the page images of a book and pack them as .cbz",
    )
    parser.add_argument(
        "target",
        help="Book id, or a text file with one book id per line",
    )
    parser.add_argument(
        "--outdir",
        type=Path,
        default=Path("downloads"),
        help="Output directory (default: downloads)",
    )
    parser.add_argument(
        "--create-cbz",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Create a .cbz file per book",
    )
    parser.add_argument(
        "--cleanup",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Remove downloaded images and the url list after creating the .cbz",
    )
    parser.add_argument(
        "--reuse-session",
        action="store_true",
        help="Keep the cookies of the first book for the rest of the batch",
    )
    parser.add_argument(
        "--cooldown",
        type=float,
        default=BATCH_COOLDOWN_S,
        help="Seconds to wait between books (default: 30)",
    )
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--timeout", type=int, default=45)
    parser.add_argument("--no-progress", action="store_true")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        ids = read_document_ids(args.target)
    except OSError as e:
        print(str(e), file=sys.stderr)
        return 2
    if not ids:
        print(f"No book ids found in {args.target}", file=sys.stderr)
        return 2

    config = DownloadConfig(
        out_dir=args.outdir,
        create_cbz=bool(args.create_cbz),
        cleanup=bool(args.cleanup),
        reuse_session=bool(args.reuse_session),
        cooldown_s=float(args.cooldown),
        base_url=str(args.base_url),
        timeout_s=int(args.timeout),
        show_progress=not bool(args.no_progress),
    )
    http = HttpClient(build_session(), timeout_s=config.timeout_s)
    pipeline = DocumentPipeline(http=http, config=config)

    try:
        batch = pipeline.run_batch(ids)
    except OSError as e:
        print(str(e), file=sys.stderr)
        return 2

    for res in batch.results:
        where = res.archive_path or res.pages_dir
        print(
            f"{res.document_id}: title={res.title!r} "
            f"pages={len(res.summary.saved)}/{res.page_count} -> {where}"
        )
        if not res.discovery_complete:
            print(
                f"{res.document_id}: page url discovery stopped early; "
                "some pages may be missing",
                file=sys.stderr,
            )
    for document_id, reason in batch.failures.items():
        print(f"{document_id}: FAILED ({reason})", file=sys.stderr)

    return 0 if batch.ok else 1
