"""Composition root: wires the store, couriers, pipeline and controller."""

from dataclasses import dataclass

import httpx

from .config import AppConfig
from .conversions import ConversionPipeline, RetryScheduler
from .couriers import CourierRegistry, default_registry
from .lifecycle import OrderLifecycleController
from .record_store import RecordStore


@dataclass
class AppContext:
    """Everything one running storefront process shares."""

    config: AppConfig
    store: RecordStore
    couriers: CourierRegistry
    pipeline: ConversionPipeline
    controller: OrderLifecycleController

    async def aclose(self) -> None:
        """Cancel pending conversion deliveries."""
        await self.pipeline.shutdown()


def build_context(
    config: AppConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    scheduler: RetryScheduler | None = None,
    simulation_delay: float | None = None,
) -> AppContext:
    """
    Build an AppContext from config.

    Args:
        config: Process settings (read from the environment if omitted).
        transport: httpx transport shared by all outbound calls (tests
            pass an httpx.MockTransport).
        scheduler: Retry scheduler for conversion delivery.
        simulation_delay: Override for config.simulation_delay.
    """
    config = config or AppConfig.from_env()
    store = RecordStore(config.snapshot_path)
    couriers = default_registry(
        timeout=config.courier_timeout,
        transport=transport,
        simulation_delay=(
            config.simulation_delay if simulation_delay is None else simulation_delay
        ),
    )
    pipeline = ConversionPipeline(
        graph_host=config.graph_host,
        timeout=config.conversion_timeout,
        transport=transport,
        scheduler=scheduler,
    )
    controller = OrderLifecycleController(store, couriers, pipeline)
    return AppContext(
        config=config,
        store=store,
        couriers=couriers,
        pipeline=pipeline,
        controller=controller,
    )
