# ================================================================================
# =                                 CTA_NOTIFIER                                 =
# ================================================================================

import argparse
import datetime
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

import requests

from catalog import Catalog, CatalogError, load_catalog
from config import (
    ASSETS_FILE,
    CHECK_PRICES,
    DEBUG,
    DEBUG_DIR,
    IMX_API_URL,
    KEY_ATTRIBUTE,
    LOG_DIR,
    NOTIFICATION_TIMEOUT,
    PORT,
    REFRESH_PERIOD_IN_MS,
    TOKEN_ADDRESS,
)
from liveness import start_liveness_server
from monitor import DesktopNotifierThread, Notifier, match_orders, notify_matched_orders
from poller import read_orders


def setup_logging(debug: bool = DEBUG, log_dir: Path = LOG_DIR) -> None:
    """Log to console, logs/output.log and errors to logs/error.log."""
    log_dir.mkdir(parents=True, exist_ok=True)

    error_handler = logging.FileHandler(log_dir / "error.log")
    error_handler.setLevel(logging.ERROR)

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "output.log"),
            error_handler,
        ],
    )


@dataclass
class PollContext:
    """State shared between poll ticks."""

    session: requests.Session
    notifier: Notifier
    assets_file: Path = ASSETS_FILE
    key_attribute: str = KEY_ATTRIBUTE
    check_prices: bool = CHECK_PRICES
    api_url: str = IMX_API_URL
    token_address: str = TOKEN_ADDRESS
    notification_timeout: int = NOTIFICATION_TIMEOUT
    debug: bool = DEBUG
    debug_dir: Path = DEBUG_DIR
    catalog: Catalog | None = None
    cursor: str | None = None
    tick_guard: threading.Lock = field(default_factory=threading.Lock)


def initialize(context: PollContext) -> None:
    """Load the wish-list. CatalogError is fatal and propagates."""
    logging.debug("Initializing...")
    context.catalog = load_catalog(context.assets_file, context.key_attribute)
    logging.info(f"Watching {len(context.catalog)} assets")


def update(context: PollContext) -> int:
    """Read one page of orders, match it and notify matches.

    Returns the number of notifications sent. Errors propagate.
    """
    if context.catalog is None:
        logging.debug("Not ready")
        return 0

    logging.debug("Reading orders...")
    orders, context.cursor = read_orders(
        context.session,
        context.cursor,
        api_url=context.api_url,
        token_address=context.token_address,
        debug=context.debug,
        debug_dir=context.debug_dir,
    )

    matched = match_orders(
        context.catalog,
        orders,
        check_prices=context.check_prices,
        attribute=context.key_attribute,
    )
    logging.debug(f"{len(matched)}/{len(orders)} orders matched")

    return notify_matched_orders(
        context.notifier,
        matched,
        collection=context.token_address,
        timeout=context.notification_timeout,
    )


def tick(context: PollContext) -> int:
    """Run one guarded update; never raises except on interrupt."""
    if not context.tick_guard.acquire(blocking=False):
        logging.warning("Previous tick still running - skipping")
        return 0

    try:
        return update(context)
    except requests.RequestException as e:
        logging.error(f"Failed to read orders: {e}")
    except ValueError as e:
        logging.error(f"Bad order listing: {e}")
    except Exception:
        logging.exception("Tick failed")
    finally:
        context.tick_guard.release()

    return 0


def next_deadline(start: float, now: float, period: float) -> tuple[float, int]:
    """Return the next tick time after now and how many firings were missed."""
    elapsed = now - start
    missed = max(0, int(elapsed // period))
    return start + (missed + 1) * period, missed


def run(context: PollContext, period_ms: int = REFRESH_PERIOD_IN_MS) -> None:
    """Load assets, then tick on a fixed period until interrupted."""
    period = max(period_ms, 1) / 1000
    initialize(context)

    tick_count = 0
    while True:
        tick_count += 1
        start_time = time.monotonic()

        logging.debug(f"================ Tick #{tick_count} ================")
        tick(context)

        deadline, missed = next_deadline(start_time, time.monotonic(), period)
        if missed:
            logging.warning(f"Tick took longer than {period:.1f}s - skipped {missed} tick(s)")

        sleep_time = max(0, deadline - time.monotonic())
        next_time = datetime.datetime.now() + datetime.timedelta(seconds=sleep_time)
        logging.debug(f"Next tick at {next_time.strftime('%H:%M:%S')}")
        time.sleep(sleep_time)


def create_notifier() -> Notifier:
    return DesktopNotifierThread(app_name="CTA Notifier")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Notify when wish-listed assets are listed at an acceptable price"
    )
    parser.add_argument("--once", action="store_true", help="run a single tick and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for cta_notifier."""
    args = parse_args(argv)
    setup_logging()

    if not TOKEN_ADDRESS:
        logging.warning("TOKEN_ADDRESS is not set - listing all collections")

    context = PollContext(session=requests.Session(), notifier=create_notifier())

    try:
        if args.once:
            initialize(context)
            tick(context)
            return

        start_liveness_server(PORT)
        logging.info(f"Live on {PORT} ...")
        logging.info(
            f"Starting cta_notifier (refresh period: {REFRESH_PERIOD_IN_MS}ms, check prices: {CHECK_PRICES})"
        )
        run(context)
    except CatalogError as e:
        logging.critical(f"Invalid assets configuration: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info("CTA notifier stopped")
    finally:
        context.session.close()
        context.notifier.close()


if __name__ == "__main__":
    main()
