#!/usr/bin/env python3
"""ZhivLux storefront 命令行入口。

使用方式：
    # 加载目录（缓存优先）
    python main.py catalog
    python main.py catalog --category Game --popular
    python main.py catalog --search legends --json

    # 查看商品规格
    python main.py variants mobile-legends

    # 下单支付（网关未配置时为模拟支付）
    python main.py checkout --product "Mobile Legends" --variant "86 Diamonds" \\
        --user-id 12345678 --zone-id 1234 --payment dana --fee 2500
    python main.py checkout --product Roblox --method login --variant "80 Robux" \\
        --user-id roblox_user --payment gopay

    # 查询订单
    python main.py track ZLX-1718000000000-A1B2C3 --gateway

    # 健康检查 / 后台统计
    python main.py health --strict
    python main.py admin-stats
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from loguru import logger

from src.core.config import Settings
from src.core.domain.currency import format_currency
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.data_api import DataApiError
from src.core.infrastructure.logging import setup_logging
from src.modules.catalog.application.loader import LoadProgress
from src.modules.catalog.domain.entities import (
    CatalogFilters,
    CatalogSnapshot,
    Product,
    ProductCategory,
)
from src.modules.catalog.domain.exceptions import ProductNotFoundError
from src.modules.orders.application.payment_types import payment_method
from src.modules.orders.domain.entities import (
    CheckoutProduct,
    CheckoutRequest,
    Customer,
    PaymentToken,
)
from src.storefront import Storefront, build_storefront


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def print_header(title: str) -> None:
    print(f"\n{'=' * 60}")
    print(title)
    print(f"{'=' * 60}")


def print_snapshot(snapshot: CatalogSnapshot) -> None:
    print(f"Categories: {', '.join(snapshot.categories) or '-'}")
    print(f"Banners: {len(snapshot.banners)}")
    print(f"\n{'-' * 40}")
    for product in snapshot.products:
        popular = " *" if product.is_popular else ""
        packages = product.all_packages()
        prices = (
            f"{format_currency(min(p.price for p in packages))} - "
            f"{format_currency(max(p.price for p in packages))}"
            if packages
            else "-"
        )
        print(f"{product.name}{popular} [{product.category.value}] {prices}")


def print_variants(product: Product) -> None:
    if product.has_methods:
        for method_id in product.method_ids:
            group = product.method(method_id)
            print(f"\n{group.display_name} ({method_id}): {group.description}")
            for package in group.packages:
                print(f"  {package.name}: {format_currency(package.price)}")
    else:
        for variant in product.flat_variants():
            print(f"  {variant.name}: {format_currency(variant.price)}")


# ============ 命令 ============


async def cmd_catalog(storefront: Storefront, args: argparse.Namespace) -> int:
    filters = CatalogFilters(
        category=ProductCategory(args.category) if args.category else None,
        is_popular=True if args.popular else None,
        search=args.search,
    )

    def on_progress(event: LoadProgress) -> None:
        if not args.json:
            print(f"[{event.progress:3d}%] {event.stage.value}")

    result = await storefront.loader.load(filters, on_progress=on_progress)

    if args.json:
        print_json(result.model_dump(mode="json"))
        return 0

    print_header(f"Catalog ({result.source.value})")
    if result.error:
        print(f"Error: {result.error}")
    if result.timeout_reason:
        print(f"Timeout: {result.timeout_reason}")
    print_snapshot(result.snapshot)
    return 0


async def cmd_variants(storefront: Storefront, args: argparse.Namespace) -> int:
    product, _ = await storefront.games.find_variants(args.slug)
    print_header(product.name)
    print_variants(product)
    return 0


async def cmd_checkout(storefront: Storefront, args: argparse.Namespace) -> int:
    result = await storefront.loader.load()
    needle = args.product.strip().lower()
    product = next(
        (p for p in result.snapshot.products if p.name.lower() == needle), None
    )
    if product is None:
        raise ProductNotFoundError(args.product)

    packages = (
        product.packages_for(args.method) if args.method else product.flat_variants()
    )
    variant = next((v for v in packages if v.name == args.variant), None)
    if variant is None:
        print(f"Variant '{args.variant}' not found for {product.name}")
        print_variants(product)
        return 1

    settings = storefront.settings
    request = CheckoutRequest(
        product=CheckoutProduct(
            name=product.name,
            image_url=product.image_url,
            currency_name=product.currency_name,
        ),
        customer=Customer(
            user_id=args.user_id,
            zone_id=args.zone_id,
            email=args.email or settings.PAYMENT_DEFAULT_EMAIL,
            phone=args.phone or settings.PAYMENT_DEFAULT_PHONE,
        ),
        variant=variant,
        payment_method=payment_method(args.payment, fee=args.fee),
    )

    print_header(f"Checkout {product.name} - {variant.name}")
    print(f"Total: {format_currency(request.total_amount)}")
    state = await storefront.orchestrator.process(request)

    if args.json:
        print_json(state.model_dump(mode="json"))
    else:
        print(f"Order ID: {state.order_id}")
        print(f"Status: {state.status.value if state.status else '-'}")
        if state.mock:
            print("Mock payment (gateway not configured)")
        if state.abandoned:
            print("Payment page closed before completion")
        if state.error:
            print(f"Error: {state.error}")
    return 0 if state.success else 1


async def cmd_track(storefront: Storefront, args: argparse.Namespace) -> int:
    order = await storefront.tracking.track(args.order_id)
    if args.json:
        print_json(order.model_dump(mode="json"))
    else:
        print_header(f"Order {order.order_id}")
        print(f"Product: {order.product_name} - {order.variant_name}")
        print(f"Amount: {format_currency(order.total_amount)}")
        print(f"Payment: {order.payment_method}")
        print(f"Status: {order.status.value}")
        print(f"Created: {order.created_at.isoformat()}")

    if args.gateway:
        gateway_status = await storefront.tracking.check_gateway_status(args.order_id)
        report = gateway_status.report
        print(
            f"Gateway: {report.transaction_status or '-'} "
            f"(code {report.status_code or '-'})"
        )
    return 0


async def cmd_health(storefront: Storefront, args: argparse.Namespace) -> int:
    health = await storefront.health()
    if args.json:
        print_json(health)
    else:
        print_header("Health Check Report")
        for component, info in health.items():
            print(f"{component}: {info['status']}")
            for key, value in info.items():
                if key != "status" and value is not None:
                    print(f"    {key}: {value}")

    if args.strict:
        return 1 if any(info["status"] == "error" for info in health.values()) else 0
    return 0


async def cmd_admin_stats(storefront: Storefront, args: argparse.Namespace) -> int:
    stats = await storefront.admin.get_admin_stats()
    if args.json:
        print_json(stats.model_dump())
    else:
        print_header("Admin Stats")
        print(f"Products: {stats.total_products} ({stats.popular_products} popular)")
        print(f"Users: {stats.total_users}")
        print(f"Transactions: {stats.total_transactions}")
        print(f"Revenue: {format_currency(stats.total_revenue)}")
    return 0


COMMANDS = {
    "catalog": cmd_catalog,
    "variants": cmd_variants,
    "checkout": cmd_checkout,
    "track": cmd_track,
    "health": cmd_health,
    "admin-stats": cmd_admin_stats,
}


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--json", action="store_true", help="JSON 格式输出")

    parser = argparse.ArgumentParser(description="ZhivLux storefront CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    catalog = sub.add_parser("catalog", help="加载目录", parents=[common])
    catalog.add_argument("--category", choices=[c.value for c in ProductCategory])
    catalog.add_argument("--popular", action="store_true", help="只显示热门商品")
    catalog.add_argument("--search", help="按名称/简介/标签搜索")

    variants = sub.add_parser("variants", help="查看商品规格", parents=[common])
    variants.add_argument("slug", help="商品 slug，如 mobile-legends")

    checkout = sub.add_parser("checkout", help="下单支付", parents=[common])
    checkout.add_argument("--product", required=True, help="商品名称")
    checkout.add_argument("--variant", required=True, help="规格名称")
    checkout.add_argument("--method", help="充值方式（分组商品，如 gamepass/login）")
    checkout.add_argument("--user-id", required=True)
    checkout.add_argument("--zone-id")
    checkout.add_argument("--email")
    checkout.add_argument("--phone")
    checkout.add_argument("--payment", default="dana", help="支付方式，如 dana/bca/alfamart")
    checkout.add_argument("--fee", type=int, default=0, help="支付手续费（IDR）")

    track = sub.add_parser("track", help="查询订单", parents=[common])
    track.add_argument("order_id")
    track.add_argument("--gateway", action="store_true", help="同时查询网关交易状态")

    health = sub.add_parser("health", help="健康检查", parents=[common])
    health.add_argument("--strict", action="store_true", help="存在错误时以非零退出码退出")

    sub.add_parser("admin-stats", help="后台统计", parents=[common])
    return parser


def publish_payment_page(token: PaymentToken) -> None:
    print(f"Open payment page: {token.redirect_url}")


async def run(args: argparse.Namespace) -> int:
    settings = Settings()
    setup_logging(settings)
    async with build_storefront(
        settings, publish_payment_page=publish_payment_page
    ) as storefront:
        try:
            return await COMMANDS[args.command](storefront, args)
        except DomainException as e:
            logger.warning(f"{args.command} failed: {e.message}")
            print(f"Error [{e.error_code}]: {e.message}")
            return 1
        except DataApiError as e:
            logger.error(f"{args.command} failed: {e}")
            print(f"Error: {e}")
            return 1


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
