"""Fetch one month through the aggregation pipeline and print it."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from app.cache.schedule_cache import ScheduleCache
from app.config import get_settings
from app.errors import ScheduleServiceError
from app.month_grid import MonthShifts
from app.schedule_service import ScheduleService
from app.services import get_config_resolver

LOGGER = logging.getLogger("schedule.inspect_month")


def render_grid(month: MonthShifts) -> str:
    """Compact text grid: one line per person, one column per day."""
    total_days = len(month.rows[0]) if month.rows else 0
    name_width = max([len(person.name) for person in month.people] + [4])
    header = " " * name_width + " | " + " ".join(f"{day:>4}" for day in range(1, total_days + 1))
    lines: List[str] = [f"{month.ym} ({len(month.people)} people, codes: {', '.join(month.codes) or '-'})", header]
    for person, row in zip(month.people, month.rows):
        cells = [("+".join(cell) if cell else ".")[:4].rjust(4) for cell in row]
        lines.append(person.name.ljust(name_width) + " | " + " ".join(cells))
    if month.shift_names:
        lines.append("")
        for code in month.codes:
            lines.append(f"{code}: {month.shift_names.get(code, code)}")
    return "\n".join(lines)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--ym", required=True, help="Month to fetch, formatted YYYY-MM.")
    parser.add_argument("--json", action="store_true", help="Print the raw MonthShifts JSON payload.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    settings = get_settings()
    service = ScheduleService(settings, ScheduleCache(0), get_config_resolver())
    try:
        payload = service.get_month_payload(args.ym)
    except ScheduleServiceError as exc:
        LOGGER.error("Failed to fetch %s: %s (%s)", args.ym, exc.message, exc.code)
        return 1
    if args.json:
        print(payload.json)
    else:
        print(render_grid(MonthShifts.model_validate_json(payload.json)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
