"""Sales metrics for the operator dashboard."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .models import ORDER_CANCELLED, Order

RECENT_LIMIT = 5
TOP_SALES_LIMIT = 5
UNKNOWN_LOCATION = "Unknown"

# Payment statuses counted as earnings
EARNING_PAYMENT_STATUSES = ("Paid", "Pending")


@dataclass
class TopSale:
    product_id: str
    name: str
    price: float
    total_sold: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "total_sold": self.total_sold,
        }


@dataclass
class DashboardMetrics:
    total_earnings: float = 0.0
    total_orders: int = 0
    customers: int = 0
    total_profit: float = 0.0
    recent_orders: list[Order] = field(default_factory=list)
    top_sales: list[TopSale] = field(default_factory=list)
    location_data: dict[str, int] = field(default_factory=dict)
    revenue_series: list[float] = field(default_factory=lambda: [0.0] * 12)
    order_series: list[int] = field(default_factory=lambda: [0] * 12)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_earnings": self.total_earnings,
            "total_orders": self.total_orders,
            "customers": self.customers,
            "total_profit": self.total_profit,
            "recent_orders": [o.to_dict() for o in self.recent_orders],
            "top_sales": [s.to_dict() for s in self.top_sales],
            "location_data": dict(self.location_data),
            "revenue_series": list(self.revenue_series),
            "order_series": list(self.order_series),
        }


def _order_month(order: Order) -> int | None:
    """Zero-based month of the order's creation time, if parseable."""
    try:
        created = datetime.fromisoformat(order.created_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    return created.month - 1


def order_profit(order: Order) -> float:
    cost = sum(item.product.purchase_cost * item.quantity for item in order.items)
    return order.total_price - cost


def compute_dashboard_metrics(orders: list[Order]) -> DashboardMetrics:
    """
    Aggregate orders (newest first) into dashboard figures.

    Cancelled orders count toward earnings, order counts and series but
    are left out of profit and top sales.
    """
    metrics = DashboardMetrics(
        total_orders=len(orders),
        customers=len({o.customer_email for o in orders}),
        recent_orders=list(orders[:RECENT_LIMIT]),
    )

    sold: Counter[str] = Counter()
    products: dict[str, TopSale] = {}
    locations: Counter[str] = Counter()

    for order in orders:
        if order.payment_status in EARNING_PAYMENT_STATUSES:
            metrics.total_earnings += order.total_price

        locations[order.customer_location or UNKNOWN_LOCATION] += 1

        month = _order_month(order)
        if month is not None:
            metrics.revenue_series[month] += order.total_price
            metrics.order_series[month] += 1

        if order.order_status == ORDER_CANCELLED:
            continue

        metrics.total_profit += order_profit(order)
        for item in order.items:
            product = item.product
            if product.id not in products:
                products[product.id] = TopSale(product.id, product.name, product.price, 0)
            sold[product.id] += item.quantity

    for product_id, total in sold.items():
        products[product_id].total_sold = total
    # Stable sort keeps first-seen order among ties
    metrics.top_sales = sorted(
        products.values(), key=lambda s: s.total_sold, reverse=True
    )[:TOP_SALES_LIMIT]
    metrics.location_data = dict(locations)
    return metrics
