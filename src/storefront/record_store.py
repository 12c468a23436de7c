"""Reactive record store: in-memory collections persisted as one JSON snapshot."""

import copy
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable

from .errors import DuplicateOrderError, OrderNotFoundError, ProductNotFoundError
from .events import EventBus, Listener
from .models import (
    Category,
    CourierSettings,
    Database,
    Notification,
    Order,
    PixelSettings,
    Product,
    StoreSettings,
    User,
)
from .seed import seed_database

logger = logging.getLogger(__name__)

# Collection / channel names delivered to subscribers
PRODUCTS = "products"
CATEGORIES = "categories"
ORDERS = "orders"
USERS = "users"
NOTIFICATIONS = "notifications"
STORE_SETTINGS = "store_settings"
COURIER_SETTINGS = "courier_settings"
PIXEL_SETTINGS = "pixel_settings"

COLLECTIONS = (
    PRODUCTS,
    CATEGORIES,
    ORDERS,
    USERS,
    NOTIFICATIONS,
    STORE_SETTINGS,
    COURIER_SETTINGS,
    PIXEL_SETTINGS,
)


class RecordStore:
    """Owns the canonical collections and fans out change notifications.

    Every mutating call rewrites the whole snapshot to disk before
    returning, then notifies subscribers with a fresh copy of the
    affected collection.
    """

    def __init__(self, path: Path, bus: EventBus | None = None):
        """
        Initialize RecordStore.

        Args:
            path: Location of the JSON snapshot file.
            bus: Event bus for change notifications (one is created if omitted).
        """
        self.path = Path(path)
        self.bus = bus or EventBus()
        self._db = self._load()

    # --- Persistence ---

    def _load(self) -> Database:
        """Read the snapshot, falling back to the seed dataset."""
        if not self.path.exists():
            db = seed_database()
            self._write(db)
            return db

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            db = Database.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "Snapshot at %s could not be parsed (%s); resetting to seed data",
                self.path,
                e,
            )
            db = seed_database()

        # Rewrite so default-filled fields land on disk
        self._write(db)
        return db

    def _write(self, db: Database) -> None:
        """Save the snapshot atomically (write to temp file, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".storefront_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(db.to_dict(), f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def _commit(self, *collections: str) -> None:
        """Persist, then notify each affected collection in order."""
        self._write(self._db)
        for name in collections:
            self.bus.publish(name, self._snapshot_factory(name))

    def _snapshot_factory(self, name: str) -> Callable[[], Any]:
        return lambda: copy.deepcopy(getattr(self._db, name))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener(collection_name, snapshot)`; returns unsubscribe."""
        return self.bus.subscribe(listener)

    def reset(self) -> None:
        """Replace all state with the seed dataset."""
        self._db = seed_database()
        self._commit(*COLLECTIONS)

    # --- Products ---

    def get_products(self) -> list[Product]:
        return copy.deepcopy(self._db.products)

    def get_product(self, product_id: str) -> Product:
        for p in self._db.products:
            if p.id == product_id:
                return copy.deepcopy(p)
        raise ProductNotFoundError(product_id)

    def save_product(self, product: Product) -> None:
        """Insert or replace a product by ID."""
        _upsert(self._db.products, copy.deepcopy(product))
        self._commit(PRODUCTS)

    def delete_product(self, product_id: str) -> None:
        self._db.products = [p for p in self._db.products if p.id != product_id]
        self._commit(PRODUCTS)

    # --- Categories ---

    def get_categories(self) -> list[Category]:
        return copy.deepcopy(self._db.categories)

    def save_category(self, category: Category) -> None:
        _upsert(self._db.categories, copy.deepcopy(category))
        self._commit(CATEGORIES)

    def delete_category(self, category_id: str) -> None:
        self._db.categories = [c for c in self._db.categories if c.id != category_id]
        self._commit(CATEGORIES)

    # --- Orders ---

    def get_orders(self) -> list[Order]:
        """All orders, newest first."""
        return copy.deepcopy(self._db.orders)

    def get_order(self, order_id: str) -> Order:
        """
        Get an order by ID.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        for o in self._db.orders:
            if o.id == order_id:
                return copy.deepcopy(o)
        raise OrderNotFoundError(order_id)

    def has_order(self, order_id: str) -> bool:
        return any(o.id == order_id for o in self._db.orders)

    def create_order(self, order: Order) -> Notification:
        """
        Store a newly placed order and raise a "new order" notification.

        Returns:
            The synthesized Notification.

        Raises:
            DuplicateOrderError: If an order with the same ID exists.
        """
        if self.has_order(order.id):
            raise DuplicateOrderError(order.id)

        self._db.orders.insert(0, copy.deepcopy(order))
        notification = Notification(
            id=uuid.uuid4().hex,
            title="New Order Received",
            message=(
                f"Order #{order.id} from {order.customer_name} - "
                f"TK{_format_amount(order.total_price)}"
            ),
        )
        self._db.notifications.insert(0, notification)
        self._commit(ORDERS, NOTIFICATIONS)
        return copy.deepcopy(notification)

    def update_order(self, order: Order) -> None:
        """
        Replace an existing order in a single write.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        for i, existing in enumerate(self._db.orders):
            if existing.id == order.id:
                self._db.orders[i] = copy.deepcopy(order)
                self._commit(ORDERS)
                return
        raise OrderNotFoundError(order.id)

    # --- Users ---

    def get_users(self) -> list[User]:
        return copy.deepcopy(self._db.users)

    def save_user(self, user: User) -> None:
        _upsert(self._db.users, copy.deepcopy(user))
        self._commit(USERS)

    # --- Notifications ---

    def get_notifications(self) -> list[Notification]:
        return copy.deepcopy(self._db.notifications)

    def mark_notifications_read(self) -> None:
        for n in self._db.notifications:
            n.read = True
        self._commit(NOTIFICATIONS)

    # --- Settings ---

    def get_store_settings(self) -> StoreSettings:
        return copy.deepcopy(self._db.store_settings)

    def save_store_settings(self, settings: StoreSettings) -> None:
        self._db.store_settings = copy.deepcopy(settings)
        self._commit(STORE_SETTINGS)

    def get_courier_settings(self) -> CourierSettings:
        return copy.deepcopy(self._db.courier_settings)

    def save_courier_settings(self, settings: CourierSettings) -> None:
        self._db.courier_settings = copy.deepcopy(settings)
        self._commit(COURIER_SETTINGS)

    def get_pixel_settings(self) -> PixelSettings:
        return copy.deepcopy(self._db.pixel_settings)

    def save_pixel_settings(self, settings: PixelSettings) -> None:
        self._db.pixel_settings = copy.deepcopy(settings)
        self._commit(PIXEL_SETTINGS)


def _upsert(items: list[Any], entity: Any) -> None:
    for i, existing in enumerate(items):
        if existing.id == entity.id:
            items[i] = entity
            return
    items.append(entity)


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{value:.0f}"
    return f"{value:.2f}"
