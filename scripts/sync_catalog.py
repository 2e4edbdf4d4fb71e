#!/usr/bin/env python3
"""CLI trigger for one catalog → vector store sync pass (cron / scheduler friendly)."""

import argparse
import asyncio
import logging
import sys

from simreco.core.config import get_settings
from simreco.core.logging import configure_logging
from simreco.db import mongo, redis as r
from simreco.domain.errors import RecoEngineError
from simreco.domain.models.sync import SyncMode
from simreco.domain.services.sync_job_svc import run_catalog_sync

logger = logging.getLogger("sync_catalog")


async def main(mode: SyncMode) -> int:
    settings = get_settings()
    await mongo.connect()
    if settings.REDIS_URL:
        await r.connect()
    try:
        report = await run_catalog_sync(mongo.get_db(), r.get_redis(), mode)
    except RecoEngineError as e:
        logger.error(f"Sync not run: {e.message}")
        return 2
    finally:
        await r.disconnect()
        await mongo.disconnect()

    for failure in report.failed:
        logger.warning(f"failed product_id={failure.product_id} reason={failure.reason}")
    logger.info(
        f"Sync {mode.value} completed succeeded={len(report.succeeded)} failed={len(report.failed)} "
        f"skipped={len(report.skipped)} removed={len(report.removed)}"
    )
    return 1 if report.partial_failure else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--mode", choices=[m.value for m in SyncMode], default=SyncMode.INCREMENTAL.value)
    args = parser.parse_args()

    configure_logging(level=logging.DEBUG if get_settings().DEBUG else logging.INFO)
    sys.exit(asyncio.run(main(SyncMode(args.mode))))
