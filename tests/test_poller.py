import json

import pytest
import requests

from conftest import FakeResponse, FakeSession, make_order, page
from poller import extract_orders, get_orders_url, get_read_filters, read_orders


def test_read_filters():
    assert get_read_filters(None, "0xabc") == {"status": "active", "sell_token_address": "0xabc"}
    assert get_read_filters("c1", "0xabc")["cursor"] == "c1"
    assert get_read_filters("", "") == {"status": "active"}


def test_orders_url():
    assert get_orders_url("https://api.sandbox.x.immutable.com/") == "https://api.sandbox.x.immutable.com/v1/orders"


def test_read_orders_returns_page_and_next_cursor(tmp_path):
    order = make_order()
    session = FakeSession(page([order], cursor="c2"))

    orders, cursor = read_orders(
        session, "c1", api_url="https://api", token_address="0xabc", debug=False, debug_dir=tmp_path
    )

    assert orders == [order]
    assert cursor == "c2"
    call = session.calls[0]
    assert call["url"] == "https://api/v1/orders"
    assert call["params"] == {"status": "active", "sell_token_address": "0xabc", "cursor": "c1"}
    assert call["timeout"] > 0
    assert list(tmp_path.iterdir()) == []


def test_empty_cursor_means_start_of_listing():
    session = FakeSession(page([], cursor=""))
    _, cursor = read_orders(session, None, api_url="https://api", token_address="0xabc", debug=False)
    assert cursor is None
    assert "cursor" not in session.calls[0]["params"]


def test_debug_mode_saves_raw_page(tmp_path):
    session = FakeSession(page([make_order()]))

    read_orders(session, None, api_url="https://api", token_address="0xabc", debug=True, debug_dir=tmp_path)

    (saved,) = tmp_path.glob("*-orders.json")
    assert json.loads(saved.read_text())["result"][0]["order_id"] == 1


def test_http_error_propagates():
    session = FakeSession(FakeResponse({}, status_code=503))
    with pytest.raises(requests.HTTPError):
        read_orders(session, None, api_url="https://api", token_address="", debug=False)


def test_unexpected_envelope_is_rejected():
    with pytest.raises(ValueError):
        extract_orders({"message": "rate limited"})
    with pytest.raises(ValueError):
        extract_orders(["not", "a", "page"])


def test_debug_capture_failure_does_not_lose_the_page(tmp_path, caplog):
    blocker = tmp_path / "debug"
    blocker.write_text("not a directory")
    order = make_order()
    session = FakeSession(page([order], cursor="c1"))

    orders, cursor = read_orders(
        session, None, api_url="https://api", token_address="0xabc", debug=True, debug_dir=blocker
    )

    assert (orders, cursor) == ([order], "c1")
    assert "Failed to save raw page" in caplog.text
