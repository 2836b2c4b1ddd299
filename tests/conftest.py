from typing import Any

import pytest
import requests

ETH_UNIT = 10**18
USDC_ADDRESS = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


def make_order(
    name: str = "Hydra",
    token_id: str = "42",
    buy_type: str = "ETH",
    token_address: str = "",
    quantity_with_fees: int | str = 4 * ETH_UNIT,
    decimals: int = 18,
    image_url: str | None = None,
    order_id: int = 1,
) -> dict[str, Any]:
    properties = {"name": name}
    if image_url is not None:
        properties["image_url"] = image_url
    return {
        "order_id": order_id,
        "status": "active",
        "sell": {
            "type": "ERC721",
            "data": {
                "token_id": token_id,
                "token_address": "0xcollection",
                "properties": properties,
            },
        },
        "buy": {
            "type": buy_type,
            "data": {
                "token_address": token_address,
                "decimals": decimals,
                "quantity_with_fees": str(quantity_with_fees),
            },
        },
    }


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        return self.payload


class FakeSession:
    """Returns queued responses and records every request."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        pass


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    def send(self, title: str, message: str, **kwargs: Any) -> None:
        if self.fail:
            raise RuntimeError("no notification daemon")
        self.sent.append({"title": title, "message": message, **kwargs})

    def close(self) -> None:
        pass


def page(orders: list[dict[str, Any]], cursor: str = "next") -> FakeResponse:
    return FakeResponse({"result": orders, "cursor": cursor, "remaining": 0})


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
