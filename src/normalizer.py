from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote, urlparse

KEY_ATTRIBUTES = {"name", "image_url"}


def normalize_name(name: str) -> str:
    """Strip and case-fold a display name."""
    return name.strip().casefold()


def image_filename(url: str) -> str:
    """Return the trailing path segment of an image URL."""
    path = urlparse(url.strip()).path or url.strip()
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


def key_from_value(value: Any, attribute: str) -> str | None:
    """Derive an identity key from a raw attribute value."""
    if attribute not in KEY_ATTRIBUTES:
        raise ValueError(f"Unknown key attribute: {attribute}")

    if not isinstance(value, str) or not value.strip():
        return None

    if attribute == "image_url":
        value = image_filename(value)

    return normalize_name(value) or None


def key_from_attributes(attributes: Mapping[str, Any], attribute: str) -> str | None:
    """Derive the identity key of a configured asset descriptor."""
    return key_from_value(attributes.get(attribute), attribute)


def order_properties(order: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the sell-side asset properties of an order."""
    sell_data = (order.get("sell") or {}).get("data") or {}
    return sell_data.get("properties") or {}


def key_from_order(order: Mapping[str, Any], attribute: str) -> str | None:
    """Derive the identity key of a live marketplace order."""
    return key_from_value(order_properties(order).get(attribute), attribute)
