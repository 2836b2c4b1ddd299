import asyncio
import logging
import threading
import webbrowser
from collections.abc import Callable, Coroutine
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Any, Protocol

from desktop_notifier import DEFAULT_SOUND, DesktopNotifier

from catalog import AssetSpec, Catalog, TargetPrice
from config import (
    CHECK_PRICES,
    KEY_ATTRIBUTE,
    MARKET_ASSET_URL,
    NATIVE_TOKEN,
    NOTIFICATION_TIMEOUT,
    TOKEN_ADDRESS,
    TOKEN_INFO,
)
from normalizer import key_from_order, order_properties


class Notifier(Protocol):
    def send(self, title: str, message: str, **kwargs: Any) -> Any: ...

    def close(self) -> None: ...


class DesktopNotifierThread:
    """Desktop notifier whose asyncio loop keeps running in a daemon thread.

    Click callbacks arrive on that loop after send() has returned, so the
    loop has to outlive every send.
    """

    def __init__(
        self,
        app_name: str = "CTA Notifier",
        notifier_factory: Callable[..., Any] = DesktopNotifier,
    ):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, name="notifier", daemon=True)
        self.thread.start()
        self.notifier = self.run(self._create(notifier_factory, app_name))

    @staticmethod
    async def _create(factory: Callable[..., Any], app_name: str) -> Any:
        return factory(app_name=app_name)

    def run(self, coro: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)

    def send(self, title: str, message: str, **kwargs: Any) -> Any:
        return self.run(self.notifier.send(title=title, message=message, **kwargs))

    def close(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout=5)


def get_buy_side(order: dict[str, Any]) -> tuple[str, str, dict[str, Any]]:
    """Return buy token type, lowercase contract address and raw data."""
    buy = order.get("buy") or {}
    data = buy.get("data") or {}
    return str(buy.get("type", "")), str(data.get("token_address") or "").lower(), data


def get_order_amount(order: dict[str, Any]) -> Decimal:
    """Convert the raw buy quantity (with fees) to human scale."""
    _, _, data = get_buy_side(order)
    try:
        raw = Decimal(int(data["quantity_with_fees"]))
        decimals = int(data.get("decimals", 0))
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise ValueError(f"Order {order.get('order_id')} has no usable buy quantity") from e
    return raw.scaleb(-decimals)


def format_amount(amount: Decimal) -> str:
    """Format an amount without exponent or trailing zeros."""
    return f"{amount.normalize():f}"


def get_token_name(order: dict[str, Any], token_info: dict[str, dict[str, str]] = TOKEN_INFO) -> str:
    """Get the configured name of the token an order is paid in."""
    buy_type, buy_address, _ = get_buy_side(order)
    if buy_type == TOKEN_INFO[NATIVE_TOKEN]["type"]:
        return NATIVE_TOKEN

    for token_name, info in token_info.items():
        if buy_type == info["type"] and buy_address == info["address"].lower():
            return token_name

    return buy_type or "?"


def token_matches(order: dict[str, Any], target: TargetPrice) -> bool:
    """Check that a target price is expressed in the order's buy token."""
    buy_type, buy_address, _ = get_buy_side(order)
    if buy_type == "ETH":
        return target.token_type == "ETH"
    return buy_type == target.token_type and buy_address == target.token_address


def match_price(asset: AssetSpec, order: dict[str, Any]) -> bool:
    """Check if the order price is at or below any target price in its token."""
    targets = [t for t in asset.target_prices if token_matches(order, t)]
    if not targets:
        return False

    try:
        amount = get_order_amount(order)
    except ValueError as e:
        logging.debug(f"Skipping unpriced order: {e}")
        return False

    return any(amount <= t.max_value for t in targets)


def match_orders(
    catalog: Catalog,
    orders: list[dict[str, Any]],
    check_prices: bool = CHECK_PRICES,
    attribute: str = KEY_ATTRIBUTE,
) -> list[dict[str, Any]]:
    """Match orders against assets to buy to extract interesting orders."""
    matched = []
    for order in orders:
        asset = catalog.get(key_from_order(order, attribute))
        if asset is None:
            continue
        if check_prices and not match_price(asset, order):
            continue
        matched.append(order)
    return matched


def get_asset_url(order: dict[str, Any], collection: str = TOKEN_ADDRESS) -> str:
    """Build the marketplace link of the asset sold by an order."""
    token_id = ((order.get("sell") or {}).get("data") or {}).get("token_id", "")
    return MARKET_ASSET_URL.format(collection=collection, token_id=token_id)


def format_notification(
    order: dict[str, Any], collection: str = TOKEN_ADDRESS
) -> tuple[str, str, str]:
    """Format title, message and link for a matched order."""
    title = str(order_properties(order).get("name") or "Unknown asset")
    token_name = get_token_name(order)
    try:
        amount = format_amount(get_order_amount(order))
    except ValueError:
        amount = "?"
    return title, f"{amount} {token_name}", get_asset_url(order, collection)


def send_notification(
    notifier: Notifier,
    title: str,
    message: str,
    url: str,
    sound: bool = True,
    timeout: int = NOTIFICATION_TIMEOUT,
) -> None:
    """Dispatch a desktop notification that opens url when clicked."""
    notifier.send(
        title=title,
        message=message,
        on_clicked=partial(webbrowser.open, url),
        sound=DEFAULT_SOUND if sound else None,
        timeout=timeout,
    )


def notify_matched_orders(
    notifier: Notifier,
    matched_orders: list[dict[str, Any]],
    collection: str = TOKEN_ADDRESS,
    timeout: int = NOTIFICATION_TIMEOUT,
) -> int:
    """Notify interesting orders, returning how many notifications went out."""
    sent = 0
    for order in matched_orders:
        title, message, url = format_notification(order, collection)
        logging.info(f"MATCH FOUND: {title} for {message} - {url}")
        try:
            send_notification(notifier, title, message, url, sound=True, timeout=timeout)
            sent += 1
        except Exception as e:
            logging.error(f"Failed to send notification for {title}: {e}")
    return sent
