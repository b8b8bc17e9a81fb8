#!/usr/bin/env python

"""
Configuration handler
"""

import os
import sys
import logging
import shutil
import yaml

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 20
DEFAULT_HISTORY_LIMIT = 5


class Config:
    def __init__(self, config_filename: str) -> None:
        # Relative config paths are taken from the working directory
        config_path = os.path.abspath(config_filename)
        default_config_path = os.path.join(os.path.dirname(__file__), "default_config.yaml")

        self.config_filename = config_filename

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                self.config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"No config file found at {config_path}, creating one...")
            try:
                shutil.copyfile(default_config_path, config_path)
                logger.warning(
                    f"Insert bot token in {config_path} and rerun"
                )
            except FileNotFoundError:
                logger.error(f"Default config file not found at {default_config_path}")
            sys.exit(1)

        bot_settings = self.config.get("bot", {})
        self.token = bot_settings.get("token")
        self.dev_mode = bool(bot_settings.get("dev_mode", False))

        db_filename = self.config["database"]["filename"]
        if db_filename != ":memory:":
            db_filename = os.path.join(os.path.dirname(config_path), db_filename)
        self.db_filename = db_filename

        display_settings = self.config.get("display", {})
        self.leaderboard_limit = int(display_settings.get("leaderboard_limit", DEFAULT_LEADERBOARD_LIMIT))
        self.history_limit = int(display_settings.get("history_limit", DEFAULT_HISTORY_LIMIT))
