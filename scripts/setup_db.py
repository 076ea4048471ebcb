#!/usr/bin/env python3
"""Create the EduTrack tables in the configured database."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import get_settings
from edutrack.core.logging import get_logger, setup_logging
from edutrack.data.db import close_engine, init_schema

log = get_logger(__name__)


async def main() -> None:
    settings = get_settings()
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    log.info("schema_setup_starting", environment=settings.edutrack_env)

    try:
        await init_schema()
        log.info("schema_setup_complete")
    except Exception as exc:
        log.error("schema_setup_failed", error=str(exc))
        raise
    finally:
        await close_engine()


if __name__ == "__main__":
    asyncio.run(main())
