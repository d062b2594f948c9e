"""商品 slug 工具。

"Mobile Legends" -> "mobile-legends" -> "mobile legends"
"""

import re

from src.core.domain.exceptions import ValidationError


def slugify(name: str) -> str:
    """将商品名称转换为 URL 友好格式。"""
    slug = re.sub(r"[^a-z0-9\s]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def slug_to_search_name(slug: str) -> str:
    """将 slug 还原为可搜索的名称。"""
    return slug.replace("-", " ").lower()


def game_url(name: str) -> str:
    """生成商品详情页路径。"""
    if not name or not name.strip():
        raise ValidationError("Invalid game name provided")
    return f"/games/{slugify(name)}"
