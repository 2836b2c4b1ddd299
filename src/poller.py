import datetime
import json
import logging
from pathlib import Path
from typing import Any

import requests

from config import DEBUG, DEBUG_DIR, IMX_API_URL, REQUEST_TIMEOUT, TOKEN_ADDRESS


def get_headers() -> dict[str, str]:
    """Get JSON request headers."""
    return {
        "Accept": "application/json",
        "User-Agent": "cta-notifier",
    }


def get_orders_url(api_url: str = IMX_API_URL) -> str:
    """Return the order listing endpoint."""
    return f"{api_url.rstrip('/')}/v1/orders"


def get_read_filters(
    cursor: str | None, token_address: str = TOKEN_ADDRESS
) -> dict[str, str]:
    """Compute filters to read active sell orders of the collection."""
    filters = {"status": "active"}
    if token_address:
        filters["sell_token_address"] = token_address
    if cursor:
        filters["cursor"] = cursor
    return filters


def fetch_orders_json(
    session: requests.Session,
    cursor: str | None,
    api_url: str = IMX_API_URL,
    token_address: str = TOKEN_ADDRESS,
) -> dict[str, Any]:
    """Fetch one page of active orders."""
    r = session.get(
        get_orders_url(api_url),
        params=get_read_filters(cursor, token_address),
        headers=get_headers(),
        timeout=REQUEST_TIMEOUT,
    )
    r.raise_for_status()
    return r.json()


def extract_orders(page: Any) -> tuple[list[dict[str, Any]], str | None]:
    """Extract the order list and next cursor from a listing page."""
    if not isinstance(page, dict) or not isinstance(page.get("result"), list):
        raise ValueError("Unexpected order listing response")

    orders = [o for o in page["result"] if isinstance(o, dict)]
    return orders, page.get("cursor") or None


def save_debug_page(page: Any, debug_dir: Path = DEBUG_DIR) -> Path:
    """Write a raw listing page to a timestamped file."""
    debug_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    path = debug_dir / f"{timestamp}-orders.json"
    path.write_text(json.dumps(page, indent=2), encoding="utf-8")
    return path


def read_orders(
    session: requests.Session,
    cursor: str | None,
    api_url: str = IMX_API_URL,
    token_address: str = TOKEN_ADDRESS,
    debug: bool = DEBUG,
    debug_dir: Path = DEBUG_DIR,
) -> tuple[list[dict[str, Any]], str | None]:
    """Read one page of orders starting at cursor.

    Returns the orders and the cursor for the following call. Request
    errors propagate to the caller.
    """
    page = fetch_orders_json(session, cursor, api_url, token_address)
    orders, next_cursor = extract_orders(page)

    if debug:
        try:
            path = save_debug_page(page, debug_dir)
            logging.debug(f"Saved raw page to {path}")
        except OSError as e:
            logging.error(f"Failed to save raw page to {debug_dir}: {e}")

    logging.debug(f"Read {len(orders)} orders (cursor: {next_cursor})")
    return orders, next_cursor
