"""支付方式到网关 payment_type 的映射。"""

from src.modules.orders.domain.entities import PaymentMethod

DEFAULT_PAYMENT_TYPE = "bank_transfer"

PAYMENT_TYPE_MAP: dict[str, str] = {
    "dana": "dana",
    "gopay": "gopay",
    "ovo": "ovo",
    "bca": "bank_transfer",
    "bni": "bank_transfer",
    "bri": "bank_transfer",
    "mandiri": "echannel",
    "alfamart": "cstore",
    "indomaret": "cstore",
}

PAYMENT_METHOD_NAMES: dict[str, str] = {
    "dana": "DANA",
    "gopay": "GoPay",
    "ovo": "OVO",
    "bca": "BCA Virtual Account",
    "bni": "BNI Virtual Account",
    "bri": "BRI Virtual Account",
    "mandiri": "Mandiri Bill Payment",
    "alfamart": "Alfamart",
    "indomaret": "Indomaret",
}


def map_payment_type(method_id: str) -> str:
    """未知支付方式按银行转账处理。"""
    return PAYMENT_TYPE_MAP.get(method_id, DEFAULT_PAYMENT_TYPE)


def payment_method(method_id: str, fee: int = 0) -> PaymentMethod:
    return PaymentMethod(
        id=method_id,
        display_name=PAYMENT_METHOD_NAMES.get(method_id, method_id.upper()),
        fee=fee,
    )
