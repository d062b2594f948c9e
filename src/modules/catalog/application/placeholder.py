"""Offline catalog data.

- 演示目录：后端未配置时使用（7 个商品，含 Roblox 双充值方式）
- 最小占位目录：后端查询失败或加载超时时使用
"""

from typing import Any

from src.modules.catalog.domain.entities import CatalogSnapshot, ProductCategory
from src.modules.catalog.infrastructure.mappers import BannerMapper, ProductMapper

IMAGE_A = "https://images.pexels.com/photos/442576/pexels-photo-442576.jpeg"
IMAGE_B = "https://images.pexels.com/photos/1293261/pexels-photo-1293261.jpeg"


def _packages(*rows: tuple[str, int, str]) -> list[dict[str, Any]]:
    return [{"name": name, "price": price, "description": desc} for name, price, desc in rows]


DEMO_PRODUCT_RECORDS: list[dict[str, Any]] = [
    {
        "id": "1",
        "name": "Mobile Legends",
        "imageUrl": IMAGE_A,
        "category": "Game",
        "isPopular": True,
        "currencyName": "Diamonds",
        "variants": _packages(
            ("86 Diamonds", 20000, "Basic diamond package"),
            ("172 Diamonds", 40000, "Popular choice"),
            ("257 Diamonds", 60000, "Great value"),
            ("344 Diamonds", 80000, "Best seller"),
            ("429 Diamonds", 100000, "Premium package"),
        ),
    },
    {
        "id": "2",
        "name": "Free Fire",
        "imageUrl": IMAGE_B,
        "category": "Game",
        "isPopular": True,
        "currencyName": "Diamonds",
        "variants": _packages(
            ("100 Diamonds", 15000, "Starter pack"),
            ("210 Diamonds", 30000, "Popular choice"),
            ("355 Diamonds", 50000, "Great deal"),
            ("720 Diamonds", 100000, "Best value"),
        ),
    },
    {
        "id": "3",
        "name": "PUBG Mobile",
        "imageUrl": IMAGE_A,
        "category": "Game",
        "isPopular": False,
        "currencyName": "UC",
        "variants": _packages(
            ("60 UC", 16000, "Basic UC package"),
            ("325 UC", 80000, "Popular package"),
            ("660 UC", 160000, "Great value"),
            ("1800 UC", 400000, "Premium package"),
        ),
    },
    {
        "id": "4",
        "name": "Genshin Impact",
        "imageUrl": IMAGE_B,
        "category": "Game",
        "isPopular": False,
        "currencyName": "Genesis Crystals",
        "variants": _packages(
            ("60 Genesis Crystals", 16000, "Basic crystal package"),
            ("300 Genesis Crystals", 79000, "Popular package"),
            ("980 Genesis Crystals", 249000, "Great value"),
            ("1980 Genesis Crystals", 479000, "Premium package"),
        ),
    },
    {
        "id": "5",
        "name": "Valorant",
        "imageUrl": IMAGE_A,
        "category": "Game",
        "isPopular": False,
        "currencyName": "VP",
        "variants": _packages(
            ("475 VP", 50000, "Basic VP package"),
            ("1000 VP", 100000, "Popular package"),
            ("2050 VP", 200000, "Great value"),
            ("3650 VP", 350000, "Premium package"),
        ),
    },
    {
        "id": "6",
        "name": "Steam Wallet",
        "imageUrl": IMAGE_B,
        "category": "Voucher",
        "isPopular": True,
        "variants": _packages(
            ("IDR 20,000", 22000, "Basic wallet"),
            ("IDR 45,000", 47000, "Popular choice"),
            ("IDR 90,000", 92000, "Great value"),
            ("IDR 250,000", 252000, "Premium wallet"),
        ),
    },
    {
        "id": "7",
        "name": "Roblox",
        "imageUrl": IMAGE_A,
        "category": "Game",
        "isPopular": True,
        "currencyName": "Robux",
        "variants": [
            {
                "method": "gamepass",
                "name": "Via Gamepass",
                "description": "Top up melalui gamepass Roblox (lebih aman)",
                "packages": _packages(
                    ("80 Robux", 15000, "Paket starter"),
                    ("400 Robux", 70000, "Paket populer"),
                    ("800 Robux", 135000, "Paket hemat"),
                    ("1700 Robux", 270000, "Paket value"),
                    ("4500 Robux", 675000, "Paket premium"),
                    ("10000 Robux", 1350000, "Paket ultimate"),
                ),
            },
            {
                "method": "login",
                "name": "Via Login",
                "description": "Top up langsung ke akun (proses lebih cepat)",
                "packages": _packages(
                    ("80 Robux", 12000, "Paket starter - harga lebih murah"),
                    ("400 Robux", 58000, "Paket populer - harga lebih murah"),
                    ("800 Robux", 115000, "Paket hemat - harga lebih murah"),
                    ("1700 Robux", 230000, "Paket value - harga lebih murah"),
                    ("4500 Robux", 575000, "Paket premium - harga lebih murah"),
                    ("10000 Robux", 1150000, "Paket ultimate - harga lebih murah"),
                ),
            },
        ],
    },
]

DEMO_BANNER_RECORDS: list[dict[str, Any]] = [
    {"id": "1", "imageUrl": IMAGE_A, "isActive": True},
    {"id": "2", "imageUrl": IMAGE_B, "isActive": True},
]

PLACEHOLDER_PRODUCT_RECORDS: list[dict[str, Any]] = [
    {
        "id": "1",
        "name": "Mobile Legends",
        "imageUrl": IMAGE_A,
        "category": "Game",
        "isPopular": True,
        "variants": [
            {"name": "86 Diamonds", "price": 20000},
            {"name": "172 Diamonds", "price": 40000},
        ],
    },
    {
        "id": "2",
        "name": "Free Fire",
        "imageUrl": IMAGE_B,
        "category": "Game",
        "isPopular": True,
        "variants": [
            {"name": "100 Diamonds", "price": 15000},
            {"name": "210 Diamonds", "price": 30000},
        ],
    },
]

PLACEHOLDER_BANNER_RECORDS: list[dict[str, Any]] = [
    {"id": "1", "imageUrl": IMAGE_A, "isActive": True},
]


def _snapshot(
    product_records: list[dict[str, Any]],
    banner_records: list[dict[str, Any]],
) -> CatalogSnapshot:
    product_mapper = ProductMapper()
    banner_mapper = BannerMapper()
    return CatalogSnapshot.build(
        [product_mapper.to_domain(record) for record in product_records],
        [banner_mapper.to_domain(record) for record in banner_records],
    )


def demo_snapshot() -> CatalogSnapshot:
    """演示目录（分类固定展示全部三类）。"""
    snapshot = _snapshot(DEMO_PRODUCT_RECORDS, DEMO_BANNER_RECORDS)
    return snapshot.model_copy(
        update={"categories": tuple(category.value for category in ProductCategory)}
    )


def placeholder_snapshot() -> CatalogSnapshot:
    """最小占位目录。"""
    return _snapshot(PLACEHOLDER_PRODUCT_RECORDS, PLACEHOLDER_BANNER_RECORDS)
