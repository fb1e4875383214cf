#!/usr/bin/env python3
"""Import a CSV bank statement for one user."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from financeos.core.errors import FinanceError  # noqa: E402
from financeos.core.log import (  # noqa: E402
    get_logger,
    init_logging,
    log_context,
    progress_manager,
    timeit,
)
from financeos.db import session_scope  # noqa: E402
from financeos.services.import_service import ImportService, parse_csv_text  # noqa: E402

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="CSV file with type,category,amount,description,transaction_date")
    parser.add_argument("--user-id", type=int, required=True, help="Owner (tenant) of the imported rows")
    parser.add_argument("--name", default=None, help="Integration name shown in the dashboard")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=0,
        help="Rows per import batch; each batch is tracked as its own integration (0 = single batch)",
    )
    parser.add_argument("--database-url", default=None, help="Override the configured database URL")
    return parser.parse_args()


def chunks(rows: list[dict], size: int) -> list[list[dict]]:
    if size <= 0:
        return [rows]
    return [rows[i : i + size] for i in range(0, len(rows), size)]


def main() -> int:
    args = parse_args()
    init_logging()

    try:
        rows = parse_csv_text(args.path.read_text(encoding="utf-8"))
    except FinanceError as exc:
        logger.error("Cannot read %s: %s", args.path, exc.message)
        return 1
    service = ImportService()
    processed = failed = 0

    with log_context.scope(job="import_csv", user_id=args.user_id), session_scope(
        args.database_url
    ) as session:
        with timeit("CSV import", logger=logger, unit="rows", total=len(rows)), progress_manager.task(
            f"Importing {args.path.name}", total=len(rows)
        ) as task:
            for index, batch in enumerate(chunks(rows, args.batch_size), start=1):
                name = args.name
                if name and args.batch_size > 0:
                    name = f"{name} ({index})"
                try:
                    result = service.import_rows(session, args.user_id, batch, name)
                except FinanceError as exc:
                    logger.error("Import failed: %s", exc.message)
                    return 1
                processed += result.records_processed
                failed += result.records_failed
                for error in result.errors or []:
                    logger.warning(error)
                task.advance(len(batch))
                if failed:
                    task.note(f"{failed} failed")

    logger.info("Imported %d rows, %d failed", processed, failed)
    return 0 if processed or not failed else 1


if __name__ == "__main__":
    sys.exit(main())
