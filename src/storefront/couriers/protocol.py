"""Protocol and shared types for courier adapters."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from ..errors import InvalidAmountError
from .normalize import normalize_phone, round_amount

if TYPE_CHECKING:
    from ..models import Order

DEFAULT_WEIGHT_KG = 0.5


@dataclass
class DispatchOverrides:
    """Operator edits made in the dispatch form before submitting."""

    recipient_name: str | None = None
    recipient_phone: str | None = None
    recipient_address: str | None = None
    cod_amount: float | None = None
    weight: float | None = None
    note: str | None = None


@dataclass
class DispatchRequest:
    """Provider-neutral shipment request built from an Order."""

    merchant_order_id: str  # idempotency anchor: always the Order's own id
    recipient_name: str
    recipient_phone: str
    recipient_address: str
    cod_amount: int
    item_quantity: int = 1
    weight: float = DEFAULT_WEIGHT_KG
    note: str = ""

    @classmethod
    def from_order(
        cls, order: Order, overrides: DispatchOverrides | None = None
    ) -> DispatchRequest:
        o = overrides or DispatchOverrides()
        quantity = sum(item.quantity for item in order.items) or 1
        cod = o.cod_amount if o.cod_amount is not None else order.total_price
        try:
            cod_amount = round_amount(cod)
        except ValueError as e:
            raise InvalidAmountError("cod_amount", cod) from e
        weight = o.weight if o.weight is not None else DEFAULT_WEIGHT_KG
        if not math.isfinite(weight):
            raise InvalidAmountError("weight", weight)
        return cls(
            merchant_order_id=order.id,
            recipient_name=(o.recipient_name or order.customer_name).strip(),
            recipient_phone=normalize_phone(o.recipient_phone or order.customer_phone),
            recipient_address=o.recipient_address or order.full_address,
            cod_amount=cod_amount,
            item_quantity=quantity,
            weight=weight,
            note=o.note if o.note is not None else order.customer_notes,
        )


@dataclass
class DispatchResult:
    """Accepted shipment."""

    courier: str
    tracking_id: str
    message: str = ""
    simulated: bool = False
    raw: dict[str, Any] = field(default_factory=dict)


class CourierAdapter(Protocol):
    """Protocol for courier provider adapters.

    Adapters hold no per-order state. Failures are raised as CourierError
    subclasses and are never retried by the adapter.
    """

    name: str

    async def verify(self, credentials: Any) -> None:
        """Check the credentials against the provider.

        Raises:
            CourierError: If the provider rejects them or is unreachable.
        """
        ...

    async def dispatch(self, request: DispatchRequest, credentials: Any) -> DispatchResult:
        """Submit one shipment and return the provider's tracking id.

        Raises:
            CourierError: On any transport, HTTP or provider-level failure.
        """
        ...
