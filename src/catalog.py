import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from config import ASSETS_FILE, KEY_ATTRIBUTE, TOKEN_INFO
from normalizer import KEY_ATTRIBUTES, key_from_attributes


class CatalogError(Exception):
    """The wish-list document is missing or malformed."""


@dataclass(frozen=True)
class TargetPrice:
    token_name: str
    token_type: str
    token_address: str
    max_value: Decimal


@dataclass(frozen=True)
class AssetSpec:
    identity_key: str
    name: str
    target_prices: tuple[TargetPrice, ...]


Catalog = dict[str, AssetSpec]


def prepare_price(price: dict[str, Any], token_info: dict[str, dict[str, str]]) -> TargetPrice:
    """Resolve a configured max price against the token table."""
    if not isinstance(price, dict):
        raise CatalogError(f"Max price must be an object, got {price!r}")

    token = price.get("token")
    if not isinstance(token, str) or token not in token_info:
        raise CatalogError(f"Unknown token {token!r}")

    try:
        value = Decimal(str(price["value"]))
    except (KeyError, InvalidOperation) as e:
        raise CatalogError(f"Invalid value for token {token}: {price.get('value')!r}") from e

    if not value.is_finite():
        raise CatalogError(f"Invalid value for token {token}: {value}")

    info = token_info[token]
    return TargetPrice(
        token_name=token,
        token_type=info["type"],
        token_address=info["address"].lower(),
        max_value=value,
    )


def prepare_asset(
    asset: dict[str, Any],
    attribute: str,
    token_info: dict[str, dict[str, str]],
) -> AssetSpec:
    """Build an AssetSpec from one configured descriptor."""
    if not isinstance(asset, dict):
        raise CatalogError(f"Asset descriptor must be an object, got {asset!r}")

    key = key_from_attributes(asset, attribute)
    if key is None:
        raise CatalogError(f"Asset descriptor has no usable {attribute!r}: {asset!r}")

    max_prices = asset.get("max_prices")
    if not isinstance(max_prices, list):
        raise CatalogError(f"Asset {key} has no max_prices list")

    return AssetSpec(
        identity_key=key,
        name=str(asset.get("name") or key),
        target_prices=tuple(prepare_price(p, token_info) for p in max_prices),
    )


def build_catalog(
    assets: list[dict[str, Any]],
    attribute: str = KEY_ATTRIBUTE,
    token_info: dict[str, dict[str, str]] = TOKEN_INFO,
) -> Catalog:
    """Build the identity key -> AssetSpec lookup.

    Duplicate keys keep the last descriptor and log a warning.
    """
    if attribute not in KEY_ATTRIBUTES:
        raise CatalogError(f"KEY_ATTRIBUTE must be one of {sorted(KEY_ATTRIBUTES)}, got {attribute!r}")

    catalog: Catalog = {}
    for asset in assets:
        spec = prepare_asset(asset, attribute, token_info)
        if spec.identity_key in catalog:
            logging.warning(f"Duplicate asset {spec.identity_key} - keeping the last entry")
        catalog[spec.identity_key] = spec
    return catalog


def load_catalog(path: Path = ASSETS_FILE, attribute: str = KEY_ATTRIBUTE) -> Catalog:
    """Load the list of assets to buy from a JSON document.

    Raises CatalogError when the file is missing or malformed.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise CatalogError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in {path}: {e}") from e

    assets = data.get("assets") if isinstance(data, dict) else None
    if not isinstance(assets, list):
        raise CatalogError(f"{path} must contain an 'assets' list")

    catalog = build_catalog(assets, attribute)
    logging.debug(f"Input assets loaded: {len(catalog)} from {path}")
    return catalog
