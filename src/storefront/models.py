"""Data models for storefront."""

import copy
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# Order status values
ORDER_PENDING = "Pending"
ORDER_PROCESSING = "Processing"
ORDER_SHIPPED = "Shipped"
ORDER_DELIVERED = "Delivered"
ORDER_CANCELLED = "Cancelled"

ORDER_STATUSES = (
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_SHIPPED,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
)

# Allowed moves; Delivered and Cancelled are terminal.
ORDER_TRANSITIONS: dict[str, set[str]] = {
    ORDER_PENDING: {ORDER_PROCESSING, ORDER_SHIPPED, ORDER_CANCELLED},
    ORDER_PROCESSING: {ORDER_SHIPPED, ORDER_CANCELLED},
    ORDER_SHIPPED: {ORDER_DELIVERED, ORDER_CANCELLED},
    ORDER_DELIVERED: set(),
    ORDER_CANCELLED: set(),
}

PAYMENT_STATUSES = ("Paid", "Pending", "Cancel")

COURIER_PATHAO = "Pathao"
COURIER_STEADFAST = "SteadFast"
COURIER_NAMES = (COURIER_PATHAO, COURIER_STEADFAST)

PIXEL_INACTIVE = "Inactive"
PIXEL_CONNECTING = "Connecting"
PIXEL_ACTIVE = "Active"


def can_transition(current: str, target: str) -> bool:
    """Check whether an order may move from `current` to `target`."""
    return target in ORDER_TRANSITIONS.get(current, set())


def generate_order_id(now: datetime | None = None) -> str:
    """
    Generate a human-legible order ID: YYMMDD prefix plus a 4-digit suffix.

    Only 9000 suffixes exist per day, so two orders on the same day can
    collide. Callers that hold the existing IDs should re-roll on a clash.
    """
    now = now or datetime.now(timezone.utc)
    return f"{now:%y%m%d}-{random.randint(1000, 9999)}"


@dataclass
class Product:
    """A catalog product."""

    id: str
    name: str
    price: float  # sale price
    original_price: float = 0.0
    purchase_cost: float = 0.0  # internal cost
    internal_price: float = 0.0  # internal margin price
    stock: int = 0
    images: list[str] = field(default_factory=list)
    sizes: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    category: str = ""
    is_active: bool = True
    is_main: bool = False
    description: str = ""
    short_description: str = ""
    rating: float = 0.0
    review_count: int = 0
    product_code: str = ""
    delivery_regions: list[str] = field(default_factory=list)

    def snapshot(self) -> "Product":
        """Independent copy for embedding in an order."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "original_price": self.original_price,
            "purchase_cost": self.purchase_cost,
            "internal_price": self.internal_price,
            "stock": self.stock,
            "images": list(self.images),
            "sizes": list(self.sizes),
            "colors": list(self.colors),
            "category": self.category,
            "is_active": self.is_active,
            "is_main": self.is_main,
            "description": self.description,
            "short_description": self.short_description,
            "rating": self.rating,
            "review_count": self.review_count,
            "product_code": self.product_code,
            "delivery_regions": list(self.delivery_regions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            price=float(data.get("price", 0) or 0),
            original_price=float(data.get("original_price", 0) or 0),
            purchase_cost=float(data.get("purchase_cost", 0) or 0),
            internal_price=float(data.get("internal_price", 0) or 0),
            stock=int(data.get("stock", 0) or 0),
            images=list(data.get("images", [])),
            sizes=list(data.get("sizes", [])),
            colors=list(data.get("colors", [])),
            category=data.get("category", ""),
            is_active=data.get("is_active", True),
            is_main=data.get("is_main", False),
            description=data.get("description", ""),
            short_description=data.get("short_description", ""),
            rating=float(data.get("rating", 0) or 0),
            review_count=int(data.get("review_count", 0) or 0),
            product_code=data.get("product_code", ""),
            delivery_regions=list(data.get("delivery_regions", [])),
        )


@dataclass
class Category:
    id: str
    name: str
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "is_active": self.is_active}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            is_active=data.get("is_active", True),
        )


@dataclass
class User:
    id: str
    name: str
    email: str
    role: str = "Customer"  # "Admin" | "Customer"
    status: str = "Active"  # "Active" | "Banned"
    phone: str | None = None
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "created_at": self.created_at,
        }
        if self.phone is not None:
            result["phone"] = self.phone
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=data.get("role", "Customer"),
            status=data.get("status", "Active"),
            phone=data.get("phone"),
            created_at=data.get("created_at", ""),
        )


@dataclass
class CartItem:
    """A product snapshot with the shopper's chosen quantity and variant."""

    product: Product
    quantity: int
    selected_size: str = ""
    selected_color: str = ""

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "selected_size": self.selected_size,
            "selected_color": self.selected_color,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            product=Product.from_dict(data["product"]),
            quantity=int(data.get("quantity", 1)),
            selected_size=data.get("selected_size", ""),
            selected_color=data.get("selected_color", ""),
        )


@dataclass
class Order:
    """A placed order. Items hold product snapshots, not live references."""

    id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    items: list[CartItem]
    total_price: float
    customer_location: str = ""
    customer_zip_code: str = ""
    customer_notes: str = ""
    courier_preference: str | None = None
    payment_status: str = "Pending"  # "Paid" | "Pending" | "Cancel"
    order_status: str = ORDER_PENDING
    courier_name: str | None = None
    courier_tracking_id: str | None = None
    created_at: str = field(default_factory=_utc_now)

    @property
    def is_dispatched(self) -> bool:
        return self.courier_name is not None and self.courier_tracking_id is not None

    @property
    def full_address(self) -> str:
        parts = [self.customer_address, self.customer_location]
        address = ", ".join(p for p in parts if p)
        if self.customer_zip_code:
            address = f"{address}, Zip: {self.customer_zip_code}"
        return address

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "customer_location": self.customer_location,
            "customer_zip_code": self.customer_zip_code,
            "customer_notes": self.customer_notes,
            "items": [i.to_dict() for i in self.items],
            "total_price": self.total_price,
            "payment_status": self.payment_status,
            "order_status": self.order_status,
            "created_at": self.created_at,
        }
        if self.courier_preference is not None:
            result["courier_preference"] = self.courier_preference
        if self.is_dispatched:
            result["courier_name"] = self.courier_name
            result["courier_tracking_id"] = self.courier_tracking_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        courier_name = data.get("courier_name")
        tracking_id = data.get("courier_tracking_id")
        if not (courier_name and tracking_id):
            # both or neither
            courier_name = tracking_id = None
        return cls(
            id=str(data["id"]),
            customer_name=data.get("customer_name", ""),
            customer_email=data.get("customer_email", ""),
            customer_phone=data.get("customer_phone", ""),
            customer_address=data.get("customer_address", ""),
            customer_location=data.get("customer_location", ""),
            customer_zip_code=data.get("customer_zip_code", ""),
            customer_notes=data.get("customer_notes", ""),
            courier_preference=data.get("courier_preference"),
            items=[CartItem.from_dict(i) for i in data.get("items", [])],
            total_price=float(data.get("total_price", 0) or 0),
            payment_status=data.get("payment_status", "Pending"),
            order_status=data.get("order_status", ORDER_PENDING),
            courier_name=courier_name,
            courier_tracking_id=tracking_id,
            created_at=data.get("created_at", ""),
        )


@dataclass
class Notification:
    id: str
    title: str
    message: str
    read: bool = False
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "read": self.read,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            message=data.get("message", ""),
            read=data.get("read", False),
            created_at=data.get("created_at", ""),
        )


# Settings


@dataclass
class StoreSettings:
    store_name: str = "Amar Bazari"
    logo_url: str = "A"
    currency: str = "BDT"
    tax_percentage: float = 0.0
    shipping_fee: float = 60.0
    whatsapp_number: str = ""
    whatsapp_order_link: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "store_name": self.store_name,
            "logo_url": self.logo_url,
            "currency": self.currency,
            "tax_percentage": self.tax_percentage,
            "shipping_fee": self.shipping_fee,
            "whatsapp_number": self.whatsapp_number,
            "whatsapp_order_link": self.whatsapp_order_link,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreSettings":
        defaults = cls()
        return cls(
            store_name=data.get("store_name", defaults.store_name),
            logo_url=data.get("logo_url", defaults.logo_url),
            currency=data.get("currency", defaults.currency),
            tax_percentage=data.get("tax_percentage", defaults.tax_percentage),
            shipping_fee=data.get("shipping_fee", defaults.shipping_fee),
            whatsapp_number=data.get("whatsapp_number", defaults.whatsapp_number),
            whatsapp_order_link=data.get("whatsapp_order_link", defaults.whatsapp_order_link),
        )


@dataclass
class PathaoCredentials:
    client_id: str = ""
    client_secret: str = ""
    store_id: str = ""
    username: str = ""
    password: str = ""
    base_url: str | None = None
    mode: str = "live"  # "live" | "sandbox"

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "store_id": self.store_id,
            "username": self.username,
            "password": self.password,
            "base_url": self.base_url,
            "mode": self.mode,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PathaoCredentials":
        return cls(
            client_id=data.get("client_id", ""),
            client_secret=data.get("client_secret", ""),
            store_id=str(data.get("store_id", "")),
            username=data.get("username", ""),
            password=data.get("password", ""),
            base_url=data.get("base_url"),
            mode=data.get("mode", "live"),
        )


@dataclass
class SteadfastCredentials:
    api_key: str = ""
    secret_key: str = ""
    merchant_id: str = ""
    base_url: str | None = None
    mode: str = "live"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.secret_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "secret_key": self.secret_key,
            "merchant_id": self.merchant_id,
            "base_url": self.base_url,
            "mode": self.mode,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SteadfastCredentials":
        return cls(
            api_key=data.get("api_key", ""),
            secret_key=data.get("secret_key", ""),
            merchant_id=data.get("merchant_id", ""),
            base_url=data.get("base_url"),
            mode=data.get("mode", "live"),
        )


@dataclass
class CourierSettings:
    """Per-provider credential bundles. Operator-owned."""

    pathao: PathaoCredentials = field(default_factory=PathaoCredentials)
    steadfast: SteadfastCredentials = field(default_factory=SteadfastCredentials)

    def for_courier(self, courier: str) -> PathaoCredentials | SteadfastCredentials:
        if courier == COURIER_PATHAO:
            return self.pathao
        return self.steadfast

    def to_dict(self) -> dict[str, Any]:
        return {
            "pathao": self.pathao.to_dict(),
            "steadfast": self.steadfast.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CourierSettings":
        return cls(
            pathao=PathaoCredentials.from_dict(data.get("pathao", {})),
            steadfast=SteadfastCredentials.from_dict(data.get("steadfast", {})),
        )


@dataclass
class PixelSettings:
    pixel_id: str = ""
    app_id: str = ""
    access_token: str = ""
    test_event_code: str = ""
    currency: str = "BDT"
    status: str = PIXEL_INACTIVE  # "Inactive" | "Connecting" | "Active"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pixel_id": self.pixel_id,
            "app_id": self.app_id,
            "access_token": self.access_token,
            "test_event_code": self.test_event_code,
            "currency": self.currency,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PixelSettings":
        return cls(
            pixel_id=data.get("pixel_id", ""),
            app_id=data.get("app_id", ""),
            access_token=data.get("access_token", ""),
            test_event_code=data.get("test_event_code", ""),
            currency=data.get("currency", "BDT"),
            status=data.get("status", PIXEL_INACTIVE),
        )


@dataclass
class Database:
    """Full persisted state: every collection plus settings."""

    products: list[Product]
    categories: list[Category]
    orders: list[Order]
    users: list[User]
    notifications: list[Notification]
    store_settings: StoreSettings = field(default_factory=StoreSettings)
    courier_settings: CourierSettings = field(default_factory=CourierSettings)
    pixel_settings: PixelSettings = field(default_factory=PixelSettings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "categories": [c.to_dict() for c in self.categories],
            "orders": [o.to_dict() for o in self.orders],
            "users": [u.to_dict() for u in self.users],
            "notifications": [n.to_dict() for n in self.notifications],
            "store_settings": self.store_settings.to_dict(),
            "courier_settings": self.courier_settings.to_dict(),
            "pixel_settings": self.pixel_settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Database":
        return cls(
            products=[Product.from_dict(p) for p in data.get("products", [])],
            categories=[Category.from_dict(c) for c in data.get("categories", [])],
            orders=[Order.from_dict(o) for o in data.get("orders", [])],
            users=[User.from_dict(u) for u in data.get("users", [])],
            notifications=[Notification.from_dict(n) for n in data.get("notifications", [])],
            store_settings=StoreSettings.from_dict(data.get("store_settings") or {}),
            courier_settings=CourierSettings.from_dict(data.get("courier_settings") or {}),
            pixel_settings=PixelSettings.from_dict(data.get("pixel_settings") or {}),
        )
