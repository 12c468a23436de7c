"""Courier dispatch gateway: provider adapters behind one protocol."""

from .normalize import clean_text, normalize_phone, round_amount
from .pathao import PathaoCourier
from .protocol import CourierAdapter, DispatchOverrides, DispatchRequest, DispatchResult
from .registry import CourierRegistry, default_registry
from .steadfast import SteadfastCourier

__all__ = [
    "CourierAdapter",
    "CourierRegistry",
    "DispatchOverrides",
    "DispatchRequest",
    "DispatchResult",
    "PathaoCourier",
    "SteadfastCourier",
    "clean_text",
    "default_registry",
    "normalize_phone",
    "round_amount",
]
