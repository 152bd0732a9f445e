from __future__ import annotations

import logging
import sys
import time

from .config import get_settings
from .tasks import recrawl_due_profiles

LOGGER = logging.getLogger("branddna_worker")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run_cycle() -> None:
    settings = get_settings()

    outcomes = recrawl_due_profiles(settings)
    failed = [o for o in outcomes if not o.ok]
    for outcome in outcomes:
        if outcome.ok:
            LOGGER.info("brand=%s changed_fields=%s", outcome.brand_id, len(outcome.changed_fields))
    LOGGER.info("re-crawl cycle done: total=%s failed=%s", len(outcomes), len(failed))


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    LOGGER.info("BrandDNA re-crawl worker started (every %ss)", settings.worker_interval_seconds)
    while True:
        run_cycle()
        time.sleep(settings.worker_interval_seconds)


if __name__ == "__main__":
    main()
