import argparse
from pathlib import Path

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.export.postgres_persistence import PostgresReceiptPersistence
from app.ingestion.file_loader import FileLoader
from app.logging.logger import Log
from app.pipeline.exceptions import PipelineError
from app.records.models import IngestMode
from app.session.session import ReceiptSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receipts",
        description="Ingest receipt images/PDFs, extract their fields and optionally export them.",
    )
    parser.add_argument("paths", nargs="+", type=Path, help="Image or PDF files to process")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in IngestMode],
        default=IngestMode.MERGE.value,
        help="merge: one record per PDF; split: one record per PDF page (default: merge)",
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help="Store extracted receipts in the database and files root",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> session -> ingest/extract/export."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    loader = FileLoader()
    files = []
    for path in args.paths:
        try:
            files.append(loader.load(path))
        except (OSError, PipelineError) as exc:
            Log.error(f"Skipping input: {exc}", path=path)
    if not files:
        Log.error("No usable input files")
        return 1

    persistence = None
    if args.export:
        init_pool(settings)
        persistence = PostgresReceiptPersistence.from_settings(settings)

    try:
        with ReceiptSession.from_settings(settings, persistence=persistence) as session:
            ingest_report = session.ingest(files, IngestMode(args.mode))
            batch_report = session.run_extraction(
                on_progress=lambda done, total: Log.info(f"Extracted {done}/{total}")
            )
            for record in session.records():
                fields = record.extracted_fields
                Log.info(
                    "Result",
                    source=record.source_name,
                    state=record.processing_state.value,
                    vendor=fields.vendor if fields else None,
                    date=fields.date if fields else None,
                    amount=fields.amount if fields else None,
                    tax_id=fields.tax_id if fields else None,
                )
            if args.export:
                export_report = session.export_confirmed()
                Log.info(f"Export: {export_report.summary()}")
            if settings.session_cache_path:
                session.save(Path(settings.session_cache_path))
    finally:
        if args.export:
            close_pool()

    Log.info(f"Ingest: {ingest_report.summary()}; extraction: {batch_report.summary()}")
    return 0 if not ingest_report.failures and batch_report.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
