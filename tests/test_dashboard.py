"""Tests for dashboard metrics."""

from storefront.dashboard import compute_dashboard_metrics
from storefront.models import ORDER_CANCELLED, CartItem, Order, Product

SOAP = Product(id="1", name="Soap", price=650.0, purchase_cost=300.0)
BUNDLE = Product(id="2", name="Bundle", price=850.0, purchase_cost=400.0)


def make_order(order_id, items, *, email="a@example.com", location="Dhaka",
               created_at="2025-03-10T10:00:00Z", **overrides):
    cart = [CartItem(product=p, quantity=q) for p, q in items]
    return Order(
        id=order_id,
        customer_name="Customer",
        customer_email=email,
        customer_phone="01712345678",
        customer_address="Road 1",
        items=cart,
        total_price=sum(i.line_total for i in cart),
        customer_location=location,
        created_at=created_at,
        **overrides,
    )


class TestDashboardMetrics:
    def test_empty(self):
        metrics = compute_dashboard_metrics([])

        assert metrics.total_orders == 0
        assert metrics.total_earnings == 0
        assert metrics.revenue_series == [0.0] * 12
        assert metrics.top_sales == []

    def test_aggregates(self):
        orders = [
            make_order("3", [(SOAP, 1)], email="c@example.com", location="",
                       created_at="2025-01-05T00:00:00Z", order_status=ORDER_CANCELLED,
                       payment_status="Cancel"),
            make_order("2", [(BUNDLE, 2)], email="b@example.com", payment_status="Paid"),
            make_order("1", [(SOAP, 1), (BUNDLE, 1)]),
        ]

        metrics = compute_dashboard_metrics(orders)

        assert metrics.total_orders == 3
        assert metrics.customers == 3
        # Paid + Pending only
        assert metrics.total_earnings == 1700 + 1500
        # Cancelled excluded: (1700 - 800) + (1500 - 700)
        assert metrics.total_profit == 900 + 800
        assert [(s.product_id, s.total_sold) for s in metrics.top_sales] == [("2", 3), ("1", 1)]
        assert metrics.location_data == {"Unknown": 1, "Dhaka": 2}
        assert metrics.revenue_series[0] == 650
        assert metrics.revenue_series[2] == 3200
        assert metrics.order_series[2] == 2
        assert [o.id for o in metrics.recent_orders] == ["3", "2", "1"]

    def test_recent_orders_capped(self):
        orders = [make_order(str(i), [(SOAP, 1)]) for i in range(8)]

        metrics = compute_dashboard_metrics(orders)

        assert len(metrics.recent_orders) == 5

    def test_unparseable_timestamp_skipped_in_series(self):
        metrics = compute_dashboard_metrics([make_order("1", [(SOAP, 1)], created_at="")])

        assert sum(metrics.order_series) == 0
        assert metrics.total_orders == 1

    def test_to_dict(self):
        data = compute_dashboard_metrics([make_order("1", [(SOAP, 1)])]).to_dict()

        assert data["top_sales"][0]["name"] == "Soap"
        assert data["recent_orders"][0]["id"] == "1"
