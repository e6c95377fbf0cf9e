"""Command line entry point.

Usage:
    reqingest extract docs/tender.pdf --project "Billing revamp"
    reqingest extract notes.txt --project Demo --inline --output items.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from .config import IngestConfig, load_config
from .dispatch import InlineExecutor, JobDispatcher
from .errors import IngestError
from .schema.jobs import Job, JobFailed, JobType
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reqingest",
        description="Extract requirements from large documents",
    )
    parser.add_argument("--config", help="Path to config YAML (default: $REQINGEST_CONFIG)")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract requirements from a PDF or text file")
    extract.add_argument("file", help="Document to process")
    extract.add_argument("--project", required=True, help="Project name used in prompts")
    extract.add_argument("--content-type", default="general", help="Content type tag")
    extract.add_argument("--min-items", type=int, help="Items to aim for across the document")
    extract.add_argument("--max-chunks", type=int, help="Chunk budget (default: by document size)")
    extract.add_argument("--timeout", type=float, help="Worker timeout in seconds")
    extract.add_argument(
        "--inline",
        action="store_true",
        help="Run in this process instead of a worker process",
    )
    extract.add_argument("--output", "-o", help="Write the result JSON here instead of stdout")
    return parser


def run_extract(args: argparse.Namespace, config: IngestConfig) -> int:
    if args.timeout is not None:
        config.worker.timeout_seconds = args.timeout

    path = Path(args.file).resolve()
    job = Job(
        type=JobType.PDF_PROCESSING,
        data={
            "file_path": str(path),
            "file_name": path.name,
            "project_name": args.project,
            "content_type": args.content_type,
            "min_items": args.min_items,
            "max_chunks": args.max_chunks,
        },
    )

    executor = InlineExecutor(config=config) if args.inline else None
    dispatcher = JobDispatcher.from_config(config, executor=executor)

    def on_progress(job_id: str, percent: float) -> None:
        logger.info("Job %s: %.0f%%", job_id, percent)

    result = dispatcher.dispatch(job, on_progress=on_progress)
    if isinstance(result, JobFailed):
        logger.error("Extraction failed: %s", result.error)
        return 1

    output = json.dumps(result.payload, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        items = result.payload.get("items", [])
        print(f"Saved {len(items)} items to {args.output}")
    else:
        print(output)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except IngestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    setup_logging(args.log_level or config.logging.level, config.logging.file)

    try:
        if args.command == "extract":
            return run_extract(args, config)
    except IngestError as e:
        logger.error("%s", e)
        return 1
    parser.error(f"unknown command {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
