"""Registry of courier adapters, keyed by courier name."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ..config import COURIER_TIMEOUT
from ..errors import UnknownCourierError
from .pathao import PathaoCourier
from .steadfast import SteadfastCourier

if TYPE_CHECKING:
    from .protocol import CourierAdapter


class CourierRegistry:
    """Holds one adapter per courier; owned by the composition root."""

    def __init__(self) -> None:
        self._adapters: dict[str, CourierAdapter] = {}

    def register(self, adapter: CourierAdapter) -> None:
        """Register an adapter under its `name`, replacing any previous one."""
        self._adapters[adapter.name] = adapter

    def get(self, courier: str) -> CourierAdapter:
        """
        Get the adapter for a courier name (case-insensitive).

        Raises:
            UnknownCourierError: If no adapter is registered for the name.
        """
        for name, adapter in self._adapters.items():
            if name.lower() == courier.lower():
                return adapter
        raise UnknownCourierError(courier, self.supported())

    def supported(self) -> list[str]:
        """Sorted list of registered courier names."""
        return sorted(self._adapters)


def default_registry(
    timeout: float = COURIER_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
    simulation_delay: float | None = None,
) -> CourierRegistry:
    """Registry with the Pathao and SteadFast adapters."""
    kwargs: dict = {"timeout": timeout, "transport": transport}
    if simulation_delay is not None:
        kwargs["simulation_delay"] = simulation_delay
    registry = CourierRegistry()
    registry.register(PathaoCourier(**kwargs))
    registry.register(SteadfastCourier(**kwargs))
    return registry
