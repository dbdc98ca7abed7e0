from __future__ import annotations

import argparse
import asyncio
import getpass
import json
from typing import Any, Awaitable, Callable

from .cart import CartSynchronizer
from .config import ConfigError, load_config
from .error_presenter import build_error_payload
from .exceptions import ApiError
from .storefront import Storefront

Command = Callable[[Storefront, argparse.Namespace], Awaitable[Any]]


def _cart_payload(cart: CartSynchronizer) -> dict[str, Any]:
    return {
        "items": [
            {
                "line_id": line.id,
                "product_id": line.product.id,
                "name": line.product.name,
                "quantity": line.quantity,
                "price": str(line.product.price),
            }
            for line in cart.items
        ],
        "count": cart.get_cart_items_count(),
        "total": str(cart.get_cart_total()),
    }


async def cmd_login(app: Storefront, args: argparse.Namespace) -> Any:
    password = args.password or getpass.getpass("Mot de passe: ")
    session = await app.session.login(args.email, password)
    return {"user": session.user.model_dump(mode="json") if session.user else None}


async def cmd_logout(app: Storefront, args: argparse.Namespace) -> Any:
    app.session.logout()
    return {"status": app.session.status.value}


async def cmd_whoami(app: Storefront, args: argparse.Namespace) -> Any:
    user = app.session.user
    return {"status": app.session.status.value, "user": user.model_dump(mode="json") if user else None}


async def cmd_products(app: Storefront, args: argparse.Namespace) -> Any:
    if args.search:
        products = await app.catalog.search_products(args.search)
    elif args.category is not None:
        products = await app.catalog.products_by_category(args.category)
    else:
        products = await app.catalog.list_products()
    return [product.model_dump(mode="json") for product in products]


async def cmd_cart(app: Storefront, args: argparse.Namespace) -> Any:
    await app.cart.load_cart()
    return _cart_payload(app.cart)


async def cmd_add(app: Storefront, args: argparse.Namespace) -> Any:
    await app.cart.load_cart()
    await app.cart.add_to_cart(args.product_id, args.quantity)
    return _cart_payload(app.cart)


async def cmd_remove(app: Storefront, args: argparse.Namespace) -> Any:
    await app.cart.load_cart()
    await app.cart.remove_product_from_cart(args.product_id)
    return _cart_payload(app.cart)


async def cmd_clear(app: Storefront, args: argparse.Namespace) -> Any:
    await app.cart.clear_cart()
    return _cart_payload(app.cart)


async def cmd_checkout(app: Storefront, args: argparse.Namespace) -> Any:
    await app.cart.load_cart()
    order = await app.checkout(args.payment, phone=args.phone, address=args.address)
    return order.model_dump(mode="json")


async def _run(args: argparse.Namespace, command: Command) -> Any:
    config = load_config(args.env_file)
    async with Storefront.create(config) as app:
        app.session.restore()
        return await command(app, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shopie-client", description="Shopie storefront client")
    parser.add_argument("--env-file", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", default=None)
    login_parser.set_defaults(func=cmd_login)

    subparsers.add_parser("logout").set_defaults(func=cmd_logout)
    subparsers.add_parser("whoami").set_defaults(func=cmd_whoami)

    products_parser = subparsers.add_parser("products")
    products_parser.add_argument("--search", default=None)
    products_parser.add_argument("--category", type=int, default=None)
    products_parser.set_defaults(func=cmd_products)

    subparsers.add_parser("cart").set_defaults(func=cmd_cart)

    add_parser = subparsers.add_parser("add")
    add_parser.add_argument("product_id", type=int)
    add_parser.add_argument("--quantity", type=int, default=1)
    add_parser.set_defaults(func=cmd_add)

    remove_parser = subparsers.add_parser("remove")
    remove_parser.add_argument("product_id", type=int)
    remove_parser.set_defaults(func=cmd_remove)

    subparsers.add_parser("clear").set_defaults(func=cmd_clear)

    checkout_parser = subparsers.add_parser("checkout")
    checkout_parser.add_argument("--payment", choices=["CARTE", "ESPECES"], default="CARTE")
    checkout_parser.add_argument("--phone", default=None)
    checkout_parser.add_argument("--address", default=None)
    checkout_parser.set_defaults(func=cmd_checkout)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        result = asyncio.run(_run(args, args.func))
    except ApiError as exc:
        payload = build_error_payload(exc)
        print(json.dumps({"error": payload.pop("code"), **payload}, indent=2, ensure_ascii=False))
        raise SystemExit(1) from exc
    except ConfigError as exc:
        parser.error(str(exc))
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


if __name__ == "__main__":
    main()
