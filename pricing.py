"""
Order pricing and delivery progress

Pure functions deriving an order's subtotal, total and delivery progress
from its line items, shipping cost and delivery status, plus the display
derivations the dashboard shows next to each order.
"""

from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional

from logging_config import get_logger

log = get_logger(__name__)

DELIVERY_STATUSES = ("Pending", "Shipped", "Delivered", "Canceled")

DELIVERY_PROGRESS = {
    "Delivered": 100,
    "Shipped": 70,
    "Pending": 30,
    "Canceled": 0,
}

# (icon, colour) shown beside the progress bar
DELIVERY_INDICATORS = {
    "Delivered": ("check-circle", "green"),
    "Shipped": ("truck", "blue"),
    "Pending": ("clock", "yellow"),
    "Canceled": ("x-circle", "red"),
}

STATUS_TRANSITIONS = {
    "Pending": {"Shipped", "Canceled"},
    "Shipped": {"Delivered", "Canceled"},
    "Delivered": set(),
    "Canceled": set(),
}

HAPPY = "😀"
NEUTRAL = "😐"
UNHAPPY = "😡"

RATING_GLYPHS = {1: HAPPY, 2: NEUTRAL, 3: UNHAPPY}


class InvalidStatus(ValueError):
    """Delivery status outside Pending/Shipped/Delivered/Canceled."""

    def __init__(self, status: Any):
        self.status = status
        super().__init__(f"Invalid delivery status: {status!r}")


class InvalidTransition(ValueError):
    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Cannot move order from {current} to {new}")


class OrderPricing(NamedTuple):
    subtotal: float
    total: float
    delivery_progress: int


class SatisfactionDisplay(NamedTuple):
    glyph: str
    title: str


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def coerce_quantity(value: Any) -> float:
    """Parse a raw quantity; anything unusable or below 1 becomes 1."""
    number = _to_number(value)
    if number is None or number < 1:
        return 1
    return number


def coerce_shipping(value: Any) -> float:
    """Parse a raw shipping cost; anything non-numeric becomes 0."""
    number = _to_number(value)
    return 0 if number is None else number


def _item_field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, Mapping):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    return None


def compute_line_total(line_items: Iterable[Any], price_lookup: Mapping[str, Any]) -> float:
    """Sum unit price times quantity over the line items.

    A product id missing from ``price_lookup`` contributes nothing.
    Items may be dicts (``productId``/``product_id``) or objects with a
    ``product_id`` attribute.
    """
    subtotal = 0.0
    for item in line_items:
        product_id = _item_field(item, "productId", "product_id")
        price = price_lookup.get(str(product_id)) if product_id is not None else None
        if price is None:
            log.debug(f"Product {product_id} not in price table, priced at 0")
            continue
        unit_price = _to_number(price) or 0.0
        subtotal += unit_price * coerce_quantity(_item_field(item, "quantity"))
    return subtotal


def compute_order_total(subtotal: float, shipping_cost: Any = 0) -> float:
    return subtotal + coerce_shipping(shipping_cost)


def compute_delivery_progress(delivery_status: str) -> int:
    try:
        return DELIVERY_PROGRESS[delivery_status]
    except (KeyError, TypeError):
        raise InvalidStatus(delivery_status) from None


def delivery_indicator(delivery_status: str) -> Dict[str, str]:
    try:
        icon, color = DELIVERY_INDICATORS[delivery_status]
    except (KeyError, TypeError):
        raise InvalidStatus(delivery_status) from None
    return {"icon": icon, "color": color, "label": delivery_status}


def compute_satisfaction_display(delivery_status: str, rating: Any = None) -> SatisfactionDisplay:
    """Glyph shown in the feedback column.

    Canceled and Delivered/Shipped orders ignore the stored rating.
    """
    if delivery_status == "Canceled":
        return SatisfactionDisplay(UNHAPPY, "Canceled")
    if delivery_status in ("Delivered", "Shipped"):
        return SatisfactionDisplay(HAPPY, "Happy")
    number = _to_number(rating)
    if number is None or number == 0:
        return SatisfactionDisplay(NEUTRAL, "Neutral")
    value = int(number) if number.is_integer() else number
    return SatisfactionDisplay(RATING_GLYPHS.get(value, NEUTRAL), str(value))


def can_transition(current: str, new: str) -> bool:
    if current not in STATUS_TRANSITIONS:
        raise InvalidStatus(current)
    if new not in STATUS_TRANSITIONS:
        raise InvalidStatus(new)
    return current == new or new in STATUS_TRANSITIONS[current]


def check_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransition(current, new)


def price_order(
    line_items: Iterable[Any],
    price_lookup: Mapping[str, Any],
    shipping_cost: Any,
    delivery_status: str,
) -> OrderPricing:
    subtotal = compute_line_total(line_items, price_lookup)
    return OrderPricing(
        subtotal=subtotal,
        total=compute_order_total(subtotal, shipping_cost),
        delivery_progress=compute_delivery_progress(delivery_status),
    )
