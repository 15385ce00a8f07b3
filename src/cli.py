"""Command-line interface for local extraction and board reprocessing.

Provides subcommands for extracting a single document, processing a
folder of documents into CSV, and enqueueing every finished item of a
board through the job queue.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from src.documents.adapter import SUPPORTED_EXTENSIONS
from src.documents.processor import InvoiceProcessor
from src.integrations.monday import MondayClient
from src.jobs.handler import JobHandler
from src.jobs.queue import JobQueue
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_META_COLUMNS = ["filename", "status", "processing_time_s", "error"]
_FIELD_COLUMNS = [
    "total_value",
    "currency",
    "invoice_number",
    "invoice_date",
    "supplier_name",
    "customer_tax_id",
    "extraction_method",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    return sorted(
        p
        for p in input_dir.iterdir()
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def extract_single(file_path: Path, processor: InvoiceProcessor | None = None) -> dict[str, object]:
    """Extract one document and return a JSON-friendly result.

    Args:
        file_path: Path to the document file.
        processor: Extraction pipeline; built from the config when omitted.

    Returns:
        Dictionary with filename, fields, raw text and decode details.
    """
    processor = processor or InvoiceProcessor(load_config())
    outcome = processor.extract(file_path, file_path.name)
    return {
        "filename": file_path.name,
        "fields": outcome.fields.to_dict(),
        "raw_text": outcome.raw_text,
        "decoder": outcome.decode.decoder if outcome.decode else None,
        "strategy": outcome.decode.strategy if outcome.decode else None,
    }


def process_folder(
    input_dir: Path,
    output_csv: Path,
    verbose: bool = False,
    processor: InvoiceProcessor | None = None,
) -> dict[str, int]:
    """Extract every document in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        verbose: Whether to print per-file progress.
        processor: Extraction pipeline; built from the config when omitted.

    Returns:
        Summary dict with total, successful, failed and not_found counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0, "not_found": 0}

    processor = processor or InvoiceProcessor(load_config())
    logger.info("Found %d documents to process", len(files))

    rows: list[dict[str, object]] = []
    summary = {"total": len(files), "successful": 0, "failed": 0, "not_found": 0}

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            outcome = processor.extract(file_path, file_path.name)
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            rows.append({"filename": file_path.name, "status": "failed", "error": str(exc)})
            summary["failed"] += 1
            continue

        status = "not_found" if outcome.fields.is_empty else "success"
        summary["successful" if status == "success" else "not_found"] += 1
        row: dict[str, object] = {
            "filename": file_path.name,
            "status": status,
            "processing_time_s": round(time.time() - start_time, 2),
            "error": None,
        }
        row.update(outcome.fields.to_dict())
        rows.append(row)

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=_META_COLUMNS + _FIELD_COLUMNS, extrasaction="ignore"
        )
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"No code:    {summary['not_found']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def process_board(board_id: str, workers: int | None = None) -> dict[str, int]:
    """Enqueue every done item of a board and wait for the queue to drain.

    Args:
        board_id: Board whose items are reprocessed.
        workers: Override for the configured worker bound.

    Returns:
        Summary dict with enqueued, completed and failed counts.
    """
    config = load_config()
    client = MondayClient(config.monday)
    handler = JobHandler(
        source=client,
        sink=client,
        processor=InvoiceProcessor(config),
        upload_dir=Path(config.queue.upload_dir),
    )
    queue = JobQueue(
        handler,
        max_workers=workers or config.queue.max_workers,
        inter_job_delay=config.queue.inter_job_delay_s,
    )

    item_ids = client.get_done_items(board_id)
    if not item_ids:
        logger.warning("No items found in board %s", board_id)
        return {"enqueued": 0, "completed": 0, "failed": 0}

    for item_id in item_ids:
        queue.enqueue(item_id, board_id)
    queue.wait_idle()

    stats = queue.stats()
    logger.info(
        "Finished board %s: %d completed, %d failed",
        board_id,
        stats.completed,
        stats.failed,
    )
    return {"enqueued": len(item_ids), "completed": stats.completed, "failed": stats.failed}


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Invoice QR Extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Extract a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Extract a folder of documents")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with documents")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    board_parser = subparsers.add_parser(
        "board", help="Reprocess every done item of a board"
    )
    board_parser.add_argument("board_id", help="Board id")
    board_parser.add_argument("-w", "--workers", type=int, help="Concurrent workers")

    args = parser.parse_args(argv)

    setup_logging(load_config().log_level)

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.verbose)
    elif args.command == "board":
        summary = process_board(args.board_id, args.workers)
        print(json.dumps(summary, indent=2))
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
