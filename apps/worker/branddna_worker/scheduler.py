from __future__ import annotations

import datetime as dt
import logging
import time

from .config import get_settings
from .main import configure_logging, run_cycle

LOGGER = logging.getLogger("branddna_worker.scheduler")


def seconds_until_next_hour(now: dt.datetime | None = None) -> int:
    now = now or dt.datetime.now(dt.UTC)
    next_hour = (now + dt.timedelta(hours=1)).replace(minute=0, second=0, microsecond=0)
    return max(1, int((next_hour - now).total_seconds()))


def main() -> None:
    configure_logging(get_settings().log_level)
    LOGGER.info("BrandDNA re-crawl scheduler started (hourly)")
    while True:
        run_cycle()
        time.sleep(seconds_until_next_hour())


if __name__ == "__main__":
    main()
