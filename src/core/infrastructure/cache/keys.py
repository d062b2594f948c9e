"""Cache Key 命名规范。

所有 key 都带有 schema 版本后缀，格式变化时只需提升版本，旧格式的数据自然失效：
- 目录数据：{prefix}:products:{version}
- 目录时间戳：{prefix}:cache_timestamp:{version}
- 商品规格：{prefix}:variants:{game_id}:{version}
"""


class CacheKeys:
    """Cache Key 命名空间管理。"""

    PRODUCTS = "products"
    BANNERS = "banners"
    CATEGORIES = "categories"
    POPULAR_PRODUCTS = "popular"
    CACHE_TIMESTAMP = "cache_timestamp"
    GAME_VARIANTS = "variants"

    def __init__(self, prefix: str = "zhivlux", version: str = "v2"):
        self.prefix = prefix
        self.version = version

    def _key(self, *parts: str) -> str:
        return ":".join([self.prefix, *parts, self.version])

    @property
    def products(self) -> str:
        return self._key(self.PRODUCTS)

    @property
    def banners(self) -> str:
        return self._key(self.BANNERS)

    @property
    def categories(self) -> str:
        return self._key(self.CATEGORIES)

    @property
    def popular_products(self) -> str:
        return self._key(self.POPULAR_PRODUCTS)

    @property
    def cache_timestamp(self) -> str:
        return self._key(self.CACHE_TIMESTAMP)

    def game_variants(self, game_id: str) -> str:
        """生成商品规格 key。

        Args:
            game_id: 商品 ID

        Returns:
            格式化的缓存 key
        """
        return self._key(self.GAME_VARIANTS, game_id)

    def catalog_keys(self) -> list[str]:
        """目录快照的四个数据 key（不含时间戳），顺序固定。"""
        return [
            self.products,
            self.banners,
            self.categories,
            self.popular_products,
        ]
