"""Currency formatting."""


def format_currency(amount: int | float) -> str:
    """按印尼盾格式化金额（无小数，千位使用点号）。

    >>> format_currency(20000)
    'Rp 20.000'
    """
    rounded = round(amount)
    sign = "-" if rounded < 0 else ""
    digits = f"{abs(rounded):,}".replace(",", ".")
    return f"{sign}Rp {digits}"
