#!/usr/bin/env python3
"""Month-end payroll run — generate payroll rows for every salaried employee.

Usage:
    python -m scripts.run_payroll                      # previous calendar month
    python -m scripts.run_payroll --month 3 --year 2026
    python -m scripts.run_payroll --month 3 --year 2026 --overwrite

Exit codes:
    0 = run finished with no per-employee errors
    1 = one or more employees failed (see log)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date

from hrms.config import settings
from hrms.database import async_session_factory, engine
from hrms.payroll.schemas import GenerateResult
from hrms.payroll.service import PayrollService

logger = logging.getLogger("run_payroll")


def _previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return 12, today.year - 1
    return today.month - 1, today.year


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    month, year = _previous_month(date.today())
    parser = argparse.ArgumentParser(description="Generate payroll for one month")
    parser.add_argument("--month", type=int, default=month, choices=range(1, 13), metavar="1-12")
    parser.add_argument("--year", type=int, default=year)
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Recompute unpaid rows that already exist for the period",
    )
    return parser.parse_args(argv)


async def run(month: int, year: int, overwrite: bool) -> GenerateResult:
    try:
        async with async_session_factory() as session:
            try:
                result = await PayrollService.generate(session, month, year, overwrite=overwrite)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    finally:
        await engine.dispose()
    return result


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    logger.info("Payroll run for %d-%02d (overwrite=%s)", args.year, args.month, args.overwrite)
    result = asyncio.run(run(args.month, args.year, args.overwrite))

    logger.info(
        "Created %d, updated %d, skipped %d, failed %d",
        result.created, result.updated, result.skipped, len(result.errors),
    )
    for error in result.errors:
        logger.error("  %s: %s", error.employee_code or error.employee_id, error.error)
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
