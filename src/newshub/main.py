#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .aggregator import NewsAggregator
from .analytics import EventTracker
from .app import NewsApp
from .config import load_config, setup_logging
from .datamodels import COUNTRIES
from .preferences import AppTheme, PreferenceStore
from .sources.manager import SourceManager
from .themes import theme_from_name

logger = logging.getLogger("newshub")


# --- Entrypoint ---
def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Terminal news reader")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--theme",
        type=str,
        help=f"Set and store the theme. Available: {', '.join(t.name.lower() for t in AppTheme)}",
    )
    parser.add_argument(
        "--country",
        type=str,
        help=f"Set and store the headline country. Available: {', '.join(c.code for c in COUNTRIES)}",
    )
    args = parser.parse_args(argv)

    debug_path = setup_logging(args.debug)
    if debug_path:
        print(f"Debug logging enabled: {debug_path}", file=sys.stderr)

    config = load_config()
    analytics = EventTracker()
    preferences = PreferenceStore(default_country=config.get("default_country"), analytics=analytics)

    if args.theme:
        try:
            preferences.theme = theme_from_name(args.theme)
        except ValueError as e:
            print(f"{e}, keeping {preferences.theme.title}.", file=sys.stderr)
    if args.country:
        try:
            preferences.selected_country = args.country
        except ValueError as e:
            print(f"{e}, keeping {preferences.selected_country.code}.", file=sys.stderr)

    logger.info(
        "Starting with country=%s theme=%s",
        preferences.selected_country.code,
        preferences.theme.name,
    )

    sources = SourceManager(config)
    aggregator = NewsAggregator(sources, preferences, analytics=analytics)
    try:
        app = NewsApp(
            preferences=preferences,
            aggregator=aggregator,
            config=config,
            weather=sources.weather_client(),
        )
        app.run()
    except Exception as e:
        logger.exception("Application crashed: %s", e)
        print(f"Application crashed: {e}", file=sys.stderr)
    finally:
        aggregator.close()


if __name__ == "__main__":
    main()
