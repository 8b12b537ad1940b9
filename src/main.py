"""
Entry point for the VIP Reformas scraper service.

Starts the HTTP API by default, or runs a single operation from the command
line and prints its result as JSON.
"""

import asyncio
import json
import logging
import sys
from dataclasses import replace
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import uvicorn

from src.VIP.config import LOG_DIR, Settings, load_settings
from src.VIP.vip_scraper import VipScraper


def setup_logging(log_dir: Optional[Path] = LOG_DIR) -> logging.Logger:
    """
    Configure logging to write to both console and rotating file.

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    # Prevent duplicate handlers if function is called multiple times
    if root.handlers:
        return root

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        # Rotating file handler (max 10MB, keep 5 backups)
        file_handler = RotatingFileHandler(
            log_dir / "vip_scraper.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root


logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


async def run_once(settings: Settings, operation: str, argument: Optional[str]) -> Any:
    """Run one scraper operation without the HTTP layer."""
    scraper = VipScraper(settings)

    if operation == "check":
        return {"work_id": argument, "exists": await scraper.check_work(argument)}
    if operation == "work-data":
        return await scraper.get_work_data(argument)
    if operation == "search":
        return await scraper.search_works(argument or None)

    raise ValueError(f"Unknown operation: {operation}")


def main():
    """Main entry point with command-line argument handling."""
    import argparse

    parser = argparse.ArgumentParser(
        description='VIP Reformas professional zone scraper',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the HTTP API
  python -m src.main

  # Start on a specific port
  python -m src.main --port 8080

  # Check a single work and exit
  python -m src.main --check 12345

  # Extract the data of a work and exit
  python -m src.main --work-data 12345

  # Summarize listing prices (optionally filtered)
  python -m src.main --search "cocina"
        """
    )

    parser.add_argument('--host', help='Bind address (default: HOST or 0.0.0.0)')
    parser.add_argument('--port', '-p', type=int, help='HTTP port (default: PORT or 3000)')

    operations = parser.add_mutually_exclusive_group()
    operations.add_argument('--check', metavar='WORK_ID', help='Check whether a work exists')
    operations.add_argument('--work-data', metavar='WORK_ID', help='Extract the data of a work')
    operations.add_argument(
        '--search',
        metavar='TEXT',
        nargs='?',
        const='',
        help='Summarize listing prices, optionally filtered by TEXT'
    )

    args = parser.parse_args()

    setup_logging()

    try:
        settings = load_settings()
    except ValueError as e:
        logger.error(f"✗ Invalid configuration: {e}")
        sys.exit(2)

    missing = settings.missing()
    if missing:
        logger.warning(f"⚠️  Missing environment variables: {', '.join(missing)}")

    if args.check is not None:
        operation, argument = "check", args.check
    elif args.work_data is not None:
        operation, argument = "work-data", args.work_data
    elif args.search is not None:
        operation, argument = "search", args.search
    else:
        operation = None

    if operation:
        try:
            result = asyncio.run(run_once(settings, operation, argument))
        except Exception as e:
            logger.error(f"✗ {operation} failed: {e}")
            sys.exit(1)
        if hasattr(result, "to_dict"):
            result = result.to_dict()
        print(json.dumps(result, indent=2, ensure_ascii=False, default=_json_default))
        return

    from src.VIP.api import create_app

    settings = replace(settings, host=args.host or settings.host, port=args.port or settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
