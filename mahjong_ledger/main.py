#!/usr/bin/env python

"""
Mahjong Ledger
"""

from __future__ import annotations

import argparse
import logging

from telegram import Update
from telegram.ext import ApplicationBuilder

from .config import Config
from .db.db_handler import DbHandler
from .handlers import commands
from .ledger.engine import LedgerEngine

logging.basicConfig(
    format="%(asctime)s - %(name)s - [%(levelname)s] %(message)s", level=logging.INFO
)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    argparser = argparse.ArgumentParser(description="Mahjong Ledger")
    argparser.add_argument(
        "--config", default="config.yaml", type=str, help="Config filename"
    )
    return argparser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)

    # Init config
    config = Config(args.config)

    # Init db handler and load the ledger
    db_handler = DbHandler(config)
    engine = LedgerEngine.from_store(db_handler)

    # Init telegram bot; updates are handled one at a time, so there is a single writer
    app = ApplicationBuilder().token(config.token).build()
    commands.init(app, config, engine)

    logger.info("Starting bot...")
    try:
        app.run_polling(allowed_updates=Update.ALL_TYPES)
    finally:
        db_handler.close()


if __name__ == "__main__":
    main()
