from __future__ import annotations

import asyncio
from decimal import Decimal
from pathlib import Path

import httpx
import pytest

from conftest import Recorder, body_of, cart_payload, line_payload, make_storefront
from shopie_client.cart import CartState
from shopie_client.error_mapper import GENERIC_NETWORK_MESSAGE
from shopie_client.exceptions import CartError
from shopie_client.models import SessionStatus


def _primed(router: Recorder, tmp_path: Path, *lines):
    """Storefront whose cart was loaded once with ``lines``."""
    router.add("GET", "/cart", httpx.Response(200, json=cart_payload(*lines)))
    app = make_storefront(router, tmp_path)
    asyncio.run(app.cart.load_cart())
    router.reset()
    return app


def test_load_cart_replaces_items_and_sends_bearer(tmp_path: Path) -> None:
    router = Recorder()
    router.add("GET", "/cart", httpx.Response(200, json=cart_payload(line_payload(11, 5, 2), line_payload(12, 6, 1))))
    app = make_storefront(router, tmp_path)

    state = asyncio.run(app.cart.load_cart())

    assert [line.id for line in state.items] == [11, 12]
    assert state.loading is False
    assert state.error is None
    assert state.last_synced_at > 0
    assert router.calls[0].headers["Authorization"] == "Bearer token-1"


def test_load_cart_accepts_bare_list_and_drops_empty_lines(tmp_path: Path) -> None:
    router = Recorder()
    router.add("GET", "/cart", httpx.Response(200, json=[line_payload(11, 5, 2), line_payload(12, 6, 0)]))
    app = make_storefront(router, tmp_path)

    state = asyncio.run(app.cart.load_cart())

    assert [line.product.id for line in state.items] == [5]


def test_queries_derive_from_server_items(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2, price=10.0), line_payload(12, 6, 3, price=2.5))

    assert app.cart.is_product_in_cart(5) is not None
    assert app.cart.is_product_in_cart(99) is None
    assert app.cart.get_product_quantity_in_cart(6) == 3
    assert app.cart.get_product_quantity_in_cart(99) == 0
    assert app.cart.get_cart_items_count() == 2
    assert app.cart.get_cart_total() == Decimal("27.5")
    assert router.calls == []


def test_add_existing_product_updates_the_line(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2))
    router.add("PUT", "/cart/items/11", httpx.Response(200, json=cart_payload(line_payload(11, 5, 5))))

    state = asyncio.run(app.cart.add_to_cart(5, 3))

    assert router.seen() == ["PUT /cart/items/11"]
    assert body_of(router.calls[0]) == {"quantite": 5}
    assert [(line.product.id, line.quantity) for line in state.items] == [(5, 5)]


def test_add_new_product_creates_a_line(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path)
    router.add("POST", "/cart/items", httpx.Response(200, json=cart_payload(line_payload(13, 8, 1))))

    state = asyncio.run(app.cart.add_to_cart(8))

    assert router.seen() == ["POST /cart/items"]
    assert body_of(router.calls[0]) == {"productId": 8, "quantite": 1}
    assert app.cart.get_product_quantity_in_cart(8) == 1
    assert state.items[0].id == 13


@pytest.mark.parametrize("quantity", [0, -2, True, 1.5])
def test_add_rejects_invalid_quantity_without_network(tmp_path: Path, quantity) -> None:
    router = Recorder()
    app = _primed(router, tmp_path)

    with pytest.raises(CartError) as excinfo:
        asyncio.run(app.cart.add_to_cart(8, quantity))

    assert excinfo.value.kind == "validation"
    assert router.calls == []


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_update_routes_to_removal(tmp_path: Path, quantity: int) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2), line_payload(12, 6, 1))
    router.add("DELETE", "/cart/items/11", httpx.Response(200, json=cart_payload(line_payload(12, 6, 1))))

    state = asyncio.run(app.cart.update_cart_item(11, quantity))

    assert router.seen() == ["DELETE /cart/items/11"]
    assert [line.id for line in state.items] == [12]


def test_remove_product_from_cart_uses_its_line(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2))
    router.add("DELETE", "/cart/items/11", httpx.Response(200, json=cart_payload()))

    state = asyncio.run(app.cart.remove_product_from_cart(5))

    assert router.seen() == ["DELETE /cart/items/11"]
    assert state.items == ()


def test_remove_product_not_in_cart_fails_locally(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2))

    with pytest.raises(CartError) as excinfo:
        asyncio.run(app.cart.remove_product_from_cart(42))

    assert excinfo.value.kind == "not_found"
    assert excinfo.value.code == "NOT_IN_CART"
    assert router.calls == []


def test_clear_cart_is_a_single_call(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2), line_payload(12, 6, 1))
    router.add("DELETE", "/cart", httpx.Response(204))

    state = asyncio.run(app.cart.clear_cart())

    assert router.seen() == ["DELETE /cart"]
    assert state.items == ()
    assert state.loading is False


def test_mutation_without_cart_body_reloads(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path)
    router.add("POST", "/cart/items", httpx.Response(201, json={"message": "Produit ajouté"}))
    router.add("GET", "/cart", httpx.Response(200, json=cart_payload(line_payload(13, 8, 1))))

    state = asyncio.run(app.cart.add_to_cart(8))

    assert router.seen() == ["POST /cart/items", "GET /cart"]
    assert [line.id for line in state.items] == [13]


@pytest.mark.parametrize(
    ("response", "kind", "reason"),
    [
        (httpx.Response(400, json={"message": "Stock insuffisant"}), "validation", "Stock insuffisant"),
        (httpx.Response(500, json={"message": "boom"}), "server", "boom"),
        (httpx.ConnectError("offline"), "network", GENERIC_NETWORK_MESSAGE),
    ],
)
def test_failed_mutation_leaves_items_untouched(tmp_path: Path, response, kind: str, reason: str) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2))
    before = app.cart.items
    router.add("PUT", "/cart/items/11", response)

    with pytest.raises(CartError) as excinfo:
        asyncio.run(app.cart.update_cart_item(11, 9))

    assert excinfo.value.kind == kind
    assert excinfo.value.reason == reason
    assert app.cart.items == before
    assert app.cart.state.error == reason
    assert app.cart.state.loading is False
    assert router.seen() == ["PUT /cart/items/11"]


def test_older_load_finishing_last_is_discarded(tmp_path: Path) -> None:
    async def scenario():
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_old_cart(request: httpx.Request) -> httpx.Response:
            entered.set()
            await release.wait()
            return httpx.Response(200, json=cart_payload(line_payload(11, 5, 1)))

        router = Recorder()
        router.add(
            "GET",
            "/cart",
            slow_old_cart,
            httpx.Response(200, json=cart_payload(line_payload(11, 5, 4), line_payload(12, 6, 1))),
        )
        app = make_storefront(router, tmp_path)

        first = asyncio.create_task(app.cart.load_cart())
        await entered.wait()
        await app.cart.load_cart()
        assert app.cart.state.loading is True
        release.set()
        await first
        return app

    app = asyncio.run(scenario())

    assert [(line.id, line.quantity) for line in app.cart.items] == [(11, 4), (12, 1)]
    assert app.cart.state.loading is False


def test_overtaken_mutation_fetches_authoritative_cart(tmp_path: Path) -> None:
    async def scenario():
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_add(request: httpx.Request) -> httpx.Response:
            entered.set()
            await release.wait()
            return httpx.Response(200, json=cart_payload(line_payload(13, 8, 1)))

        router = Recorder()
        router.add("POST", "/cart/items", slow_add)
        router.add(
            "GET",
            "/cart",
            httpx.Response(200, json=cart_payload()),
            httpx.Response(200, json=cart_payload(line_payload(13, 8, 1), line_payload(14, 9, 2))),
        )
        app = make_storefront(router, tmp_path)

        pending = asyncio.create_task(app.cart.add_to_cart(8))
        await entered.wait()
        await app.cart.load_cart()
        release.set()
        state = await pending
        return app, router, state

    app, router, state = asyncio.run(scenario())

    assert router.seen() == ["POST /cart/items", "GET /cart", "GET /cart"]
    assert [line.id for line in state.items] == [13, 14]


def test_auth_failure_on_cart_logs_out_and_resets(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2))
    router.add("PUT", "/cart/items/11", httpx.Response(401, json={"message": "Token expiré"}))

    with pytest.raises(CartError) as excinfo:
        asyncio.run(app.cart.update_cart_item(11, 3))

    assert excinfo.value.kind == "auth"
    assert app.session.status is SessionStatus.UNAUTHENTICATED
    assert app.cart.items == ()
    assert not (tmp_path / "session.json").exists()


def test_logout_drops_in_flight_load(tmp_path: Path) -> None:
    async def scenario():
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_cart(request: httpx.Request) -> httpx.Response:
            entered.set()
            await release.wait()
            return httpx.Response(200, json=cart_payload(line_payload(11, 5, 2)))

        router = Recorder()
        router.add("GET", "/cart", slow_cart)
        app = make_storefront(router, tmp_path)

        pending = asyncio.create_task(app.cart.load_cart())
        await entered.wait()
        app.session.logout()
        release.set()
        await pending
        return app

    app = asyncio.run(scenario())

    assert app.cart.items == ()
    assert app.cart.state.loading is False


def test_cart_without_session_raises_auth_kind_without_network(tmp_path: Path) -> None:
    router = Recorder()
    app = make_storefront(router, tmp_path, token=None)

    with pytest.raises(CartError) as excinfo:
        asyncio.run(app.cart.load_cart())

    assert excinfo.value.kind == "auth"
    assert router.calls == []


def test_listeners_see_loading_then_result(tmp_path: Path) -> None:
    router = Recorder()
    router.add("GET", "/cart", httpx.Response(200, json=cart_payload(line_payload(11, 5, 2))))
    app = make_storefront(router, tmp_path)
    seen: list[CartState] = []
    unsubscribe = app.cart.add_listener(seen.append)

    asyncio.run(app.cart.load_cart())
    unsubscribe()
    asyncio.run(app.cart.load_cart())

    assert [state.loading for state in seen] == [True, False]
    assert len(seen[-1].items) == 1


def test_non_cart_answer_to_load_keeps_items(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path, line_payload(11, 5, 2))
    router.add(
        "GET",
        "/cart",
        httpx.Response(200, content=b"<html>proxy</html>", headers={"Content-Type": "text/html"}),
    )

    with pytest.raises(CartError) as excinfo:
        asyncio.run(app.cart.load_cart())

    assert excinfo.value.code == "MALFORMED_RESPONSE"
    assert excinfo.value.kind == "network"
    assert [line.id for line in app.cart.items] == [11]
    assert app.cart.state.error == GENERIC_NETWORK_MESSAGE


def test_accepted_mutation_with_failed_reload_does_not_raise(tmp_path: Path) -> None:
    router = Recorder()
    app = _primed(router, tmp_path)
    router.add("POST", "/cart/items", httpx.Response(201, text="Produit ajouté"))
    router.add("GET", "/cart", httpx.ConnectError("offline"))

    state = asyncio.run(app.cart.add_to_cart(8))

    seen = router.seen()
    assert seen[0] == "POST /cart/items"
    assert seen.count("POST /cart/items") == 1
    assert set(seen[1:]) == {"GET /cart"}
    assert state.error == GENERIC_NETWORK_MESSAGE
    assert state.loading is False
