"""Order lifecycle controller: placing, dispatching and advancing orders."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .conversions import AttemptOutcome, ConversionPipeline
from .couriers import CourierRegistry, DispatchOverrides, DispatchRequest, DispatchResult
from .errors import (
    DispatchInProgressError,
    DuplicateOrderError,
    EmptyCartError,
    InvalidPaymentStatusError,
    InvalidQuantityError,
    InvalidTransitionError,
)
from .models import (
    ORDER_CANCELLED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_SHIPPED,
    PAYMENT_STATUSES,
    PIXEL_ACTIVE,
    PIXEL_CONNECTING,
    PIXEL_INACTIVE,
    CartItem,
    Order,
    PixelSettings,
    can_transition,
    generate_order_id,
)
from .record_store import RecordStore

logger = logging.getLogger(__name__)

# Statuses from which a courier submission is allowed
DISPATCHABLE_STATUSES = (ORDER_PENDING, ORDER_PROCESSING)

# Targets an operator may set by hand; Shipped is reached only through dispatch
MANUAL_STATUSES = (ORDER_PROCESSING, ORDER_DELIVERED, ORDER_CANCELLED)

ORDER_ID_ATTEMPTS = 20


@dataclass
class CartLine:
    """A shopper's cart entry, referencing a catalog product by id."""

    product_id: str
    quantity: int = 1
    selected_size: str = ""
    selected_color: str = ""


@dataclass
class CustomerDetails:
    name: str
    email: str
    phone: str
    address: str
    location: str = ""
    zip_code: str = ""
    notes: str = ""
    courier_preference: str | None = None


class OrderLifecycleController:
    """
    Moves orders through their states and writes results to the store.

    Every status change is one `update_order` call, so subscribers never
    observe a half-applied transition. Dispatch failures propagate to the
    caller unchanged; dispatch is never retried here.
    """

    def __init__(
        self,
        store: RecordStore,
        couriers: CourierRegistry,
        pipeline: ConversionPipeline,
    ):
        self.store = store
        self.couriers = couriers
        self.pipeline = pipeline
        self._processing: set[str] = set()

    def is_processing(self, order_id: str) -> bool:
        return order_id in self._processing

    # --- Placing orders ---

    def _snapshot_items(self, cart: list[CartLine]) -> list[CartItem]:
        items = []
        for line in cart:
            if line.quantity < 1:
                raise InvalidQuantityError(line.product_id, line.quantity)
            product = self.store.get_product(line.product_id)
            items.append(
                CartItem(
                    product=product.snapshot(),
                    quantity=line.quantity,
                    selected_size=line.selected_size,
                    selected_color=line.selected_color,
                )
            )
        return items

    def _new_order_id(self) -> str:
        """Date-plus-random id, re-rolled while it clashes with a stored order."""
        order_id = generate_order_id()
        for _ in range(ORDER_ID_ATTEMPTS):
            if not self.store.has_order(order_id):
                return order_id
            logger.info("Order id %s already taken; re-rolling", order_id)
            order_id = generate_order_id()
        raise DuplicateOrderError(order_id)

    def place_order(self, cart: list[CartLine], customer: CustomerDetails) -> Order:
        """
        Create a Pending order from the cart and report the purchase.

        Products are copied into the order, so later catalog edits don't
        change it. The purchase event is fired in the background.

        Raises:
            EmptyCartError: If the cart has no lines.
            InvalidQuantityError: If a line has a quantity below one.
            ProductNotFoundError: If a line references an unknown product.
        """
        if not cart:
            raise EmptyCartError()

        items = self._snapshot_items(cart)
        order = Order(
            id=self._new_order_id(),
            customer_name=customer.name.strip(),
            customer_email=customer.email.strip(),
            customer_phone=customer.phone.strip(),
            customer_address=customer.address.strip(),
            items=items,
            total_price=sum(item.line_total for item in items),
            customer_location=customer.location,
            customer_zip_code=customer.zip_code,
            customer_notes=customer.notes,
            courier_preference=customer.courier_preference,
            order_status=ORDER_PENDING,
        )
        self.store.create_order(order)
        logger.info("Placed order %s (total %s)", order.id, order.total_price)

        self.pipeline.track_purchase(order, self.store.get_pixel_settings())
        return order

    def add_to_cart(self, line: CartLine) -> None:
        """Report an add-to-cart event for a catalog product."""
        if line.quantity < 1:
            raise InvalidQuantityError(line.product_id, line.quantity)
        product = self.store.get_product(line.product_id)
        self.pipeline.track_add_to_cart(
            product, line.quantity, self.store.get_pixel_settings()
        )

    def begin_checkout(self, cart: list[CartLine]) -> float:
        """Report checkout start; returns the cart total."""
        if not cart:
            raise EmptyCartError()
        items = self._snapshot_items(cart)
        self.pipeline.track_initiate_checkout(items, self.store.get_pixel_settings())
        return sum(item.line_total for item in items)

    # --- Dispatch ---

    async def dispatch(
        self,
        order_id: str,
        courier: str,
        overrides: DispatchOverrides | None = None,
    ) -> DispatchResult:
        """
        Submit an order to a courier and mark it Shipped on success.

        A second call for the same order while one is in flight is
        rejected, not queued.

        Raises:
            DispatchInProgressError: If the order is already being dispatched.
            OrderNotFoundError: If the order doesn't exist.
            InvalidTransitionError: If the order is not Pending or Processing.
            UnknownCourierError: If no adapter exists for `courier`.
            CourierError: Any classified provider failure, unchanged.
        """
        if order_id in self._processing:
            raise DispatchInProgressError(order_id)

        self._processing.add(order_id)
        try:
            order = self.store.get_order(order_id)
            if order.order_status not in DISPATCHABLE_STATUSES:
                raise InvalidTransitionError(order_id, order.order_status, ORDER_SHIPPED)

            adapter = self.couriers.get(courier)
            credentials = self.store.get_courier_settings().for_courier(adapter.name)
            request = DispatchRequest.from_order(order, overrides)
            result = await adapter.dispatch(request, credentials)
        finally:
            self._processing.discard(order_id)

        # Re-read: the order may have been edited while the request was out
        order = self.store.get_order(order_id)
        if not can_transition(order.order_status, ORDER_SHIPPED):
            logger.warning(
                "Order %s moved to %s during dispatch; %s tracking id %s not applied",
                order_id,
                order.order_status,
                result.courier,
                result.tracking_id,
            )
            raise InvalidTransitionError(order_id, order.order_status, ORDER_SHIPPED)

        order.courier_name = result.courier
        order.courier_tracking_id = result.tracking_id
        order.order_status = ORDER_SHIPPED
        self.store.update_order(order)
        logger.info(
            "Order %s shipped via %s (tracking id %s)",
            order_id,
            result.courier,
            result.tracking_id,
        )
        return result

    # --- Manual status edits ---

    def set_status(self, order_id: str, target: str) -> Order:
        """
        Move an order to `target` by hand.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
            InvalidTransitionError: If the move is not allowed.
        """
        order = self.store.get_order(order_id)
        if target not in MANUAL_STATUSES or not can_transition(order.order_status, target):
            raise InvalidTransitionError(order_id, order.order_status, target)
        if order_id in self._processing and target == ORDER_CANCELLED:
            raise DispatchInProgressError(order_id)
        order.order_status = target
        self.store.update_order(order)
        return order

    def mark_processing(self, order_id: str) -> Order:
        return self.set_status(order_id, ORDER_PROCESSING)

    def mark_delivered(self, order_id: str) -> Order:
        return self.set_status(order_id, ORDER_DELIVERED)

    def cancel(self, order_id: str) -> Order:
        return self.set_status(order_id, ORDER_CANCELLED)

    def set_payment_status(self, order_id: str, payment_status: str) -> Order:
        """
        Record a payment status ("Paid", "Pending" or "Cancel").

        Raises:
            InvalidPaymentStatusError: If the value is not recognised.
            OrderNotFoundError: If the order doesn't exist.
        """
        if payment_status not in PAYMENT_STATUSES:
            raise InvalidPaymentStatusError(payment_status, PAYMENT_STATUSES)
        order = self.store.get_order(order_id)
        order.payment_status = payment_status
        self.store.update_order(order)
        return order

    # --- Integrations ---

    async def verify_courier(self, courier: str) -> str:
        """Check stored credentials against the provider; returns its name."""
        adapter = self.couriers.get(courier)
        await adapter.verify(self.store.get_courier_settings().for_courier(adapter.name))
        return adapter.name

    async def connect_pixel(self) -> tuple[PixelSettings, AttemptOutcome]:
        """
        Health-check the pixel settings and record the resulting status.

        Status goes Connecting, then Active (browser tag initialized) or
        Inactive.
        """
        settings = self.store.get_pixel_settings()
        settings.status = PIXEL_CONNECTING
        self.store.save_pixel_settings(settings)

        outcome = None
        try:
            outcome = await self.pipeline.verify_connection(settings)
        finally:
            # Never leave Connecting on disk
            if outcome is not None and outcome.succeeded:
                settings.status = PIXEL_ACTIVE
                self.pipeline.tag.initialize(settings.pixel_id)
                logger.info("Pixel %s connected", settings.pixel_id)
            else:
                settings.status = PIXEL_INACTIVE
                logger.warning(
                    "Pixel connection failed: %s",
                    outcome.error if outcome is not None else "health check aborted",
                )
            self.store.save_pixel_settings(settings)
        return settings, outcome
