"""FastAPI REST API for the storefront."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .app import AppContext, build_context
from .conversions.tag import TAG_SCRIPT_URL
from .couriers import DispatchOverrides
from .dashboard import compute_dashboard_metrics
from .errors import (
    AuthenticationError,
    AuthorizationError,
    CourierError,
    CourierValidationError,
    DispatchInProgressError,
    DuplicateOrderError,
    EmptyCartError,
    InvalidAmountError,
    InvalidPaymentStatusError,
    InvalidQuantityError,
    InvalidTransitionError,
    NetworkError,
    NetworkTimeoutError,
    OrderNotFoundError,
    ProductNotFoundError,
    ProviderRejectionError,
    RateLimitedError,
    ServerFaultError,
    ServiceUnavailableError,
    StorefrontError,
    UnknownCourierError,
)
from .lifecycle import CartLine, CustomerDetails
from .models import PIXEL_INACTIVE, CourierSettings, Order, PixelSettings


# --- Pydantic Schemas ---


class ProductSchema(BaseModel):
    id: str
    name: str
    price: float
    original_price: float = 0.0
    purchase_cost: float = 0.0
    internal_price: float = 0.0
    stock: int = 0
    images: list[str] = []
    sizes: list[str] = []
    colors: list[str] = []
    category: str = ""
    is_active: bool = True
    is_main: bool = False
    description: str = ""
    short_description: str = ""
    rating: float = 0.0
    review_count: int = 0
    product_code: str = ""
    delivery_regions: list[str] = []


class CategorySchema(BaseModel):
    id: str
    name: str
    is_active: bool = True


class CartItemSchema(BaseModel):
    product: ProductSchema
    quantity: int
    selected_size: str = ""
    selected_color: str = ""


class OrderSchema(BaseModel):
    id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    customer_location: str = ""
    customer_zip_code: str = ""
    customer_notes: str = ""
    courier_preference: Optional[str] = None
    items: list[CartItemSchema]
    total_price: float
    payment_status: str
    order_status: str
    courier_name: Optional[str] = None
    courier_tracking_id: Optional[str] = None
    created_at: str


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int


class CartLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    selected_size: str = ""
    selected_color: str = ""


class CustomerSchema(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    location: str = ""
    zip_code: str = ""
    notes: str = ""
    courier_preference: Optional[str] = None


class OrderCreateRequest(BaseModel):
    """Request body for placing an order."""

    items: list[CartLineSchema]
    customer: CustomerSchema


class DispatchBody(BaseModel):
    """Request body for dispatching an order; optional fields override the order."""

    courier: str = Field(..., description="Courier name: 'Pathao' or 'SteadFast'")
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_address: Optional[str] = None
    cod_amount: Optional[float] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, gt=0)
    note: Optional[str] = None


class DispatchResponse(BaseModel):
    order: OrderSchema
    courier: str
    tracking_id: str
    message: str = ""
    simulated: bool = False


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="Processing, Delivered or Cancelled")


class PaymentStatusRequest(BaseModel):
    payment_status: str = Field(..., description="Paid, Pending or Cancel")


class CourierVerifyResponse(BaseModel):
    courier: str
    verified: bool = True


class PathaoCredentialsSchema(BaseModel):
    client_id: str = ""
    client_secret: str = ""
    store_id: str = ""
    username: str = ""
    password: str = ""
    base_url: Optional[str] = None
    mode: str = "live"


class SteadfastCredentialsSchema(BaseModel):
    api_key: str = ""
    secret_key: str = ""
    merchant_id: str = ""
    base_url: Optional[str] = None
    mode: str = "live"


class CourierSettingsSchema(BaseModel):
    pathao: PathaoCredentialsSchema = PathaoCredentialsSchema()
    steadfast: SteadfastCredentialsSchema = SteadfastCredentialsSchema()


class PixelSettingsSchema(BaseModel):
    pixel_id: str = ""
    app_id: str = ""
    access_token: str = ""
    test_event_code: str = ""
    currency: str = "BDT"
    status: str = PIXEL_INACTIVE


class PixelSettingsUpdateRequest(BaseModel):
    """Pixel settings edit. Status is set only by the connect flow."""

    pixel_id: str = ""
    app_id: str = ""
    access_token: str = ""
    test_event_code: str = ""
    currency: str = "BDT"


class PixelConnectResponse(BaseModel):
    settings: PixelSettingsSchema
    connected: bool
    detail: str = ""


class DeliveryStatsSchema(BaseModel):
    sent: int
    failed: int
    last_status: Optional[str] = None


class TagCommandSchema(BaseModel):
    command: str
    args: list


class TagDrainResponse(BaseModel):
    script_url: str
    pixel_id: Optional[str] = None
    commands: list[TagCommandSchema]


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)


class CheckoutRequest(BaseModel):
    items: list[CartLineSchema]


class CheckoutResponse(BaseModel):
    total: float


class NotificationSchema(BaseModel):
    id: str
    title: str
    message: str
    read: bool = False
    created_at: str


class NotificationListResponse(BaseModel):
    notifications: list[NotificationSchema]
    unread: int


# --- Helpers ---


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(**order.to_dict())


def _cart_lines(items: list[CartLineSchema]) -> list[CartLine]:
    return [CartLine(**item.model_dump()) for item in items]


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    OrderNotFoundError: 404,
    ProductNotFoundError: 404,
    DuplicateOrderError: 409,
    EmptyCartError: 400,
    InvalidQuantityError: 400,
    InvalidAmountError: 422,
    InvalidPaymentStatusError: 400,
    InvalidTransitionError: 409,
    DispatchInProgressError: 409,
    UnknownCourierError: 400,
    CourierError: 502,
    AuthenticationError: 502,
    AuthorizationError: 502,
    CourierValidationError: 422,
    RateLimitedError: 429,
    ServerFaultError: 502,
    ServiceUnavailableError: 503,
    NetworkTimeoutError: 504,
    NetworkError: 502,
    ProviderRejectionError: 502,
}


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Map StorefrontError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, CourierError):
        content["error_kind"] = exc.kind.value
        content["provider"] = exc.provider
    return JSONResponse(status_code=status_code, content=content)


# --- App factory ---


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the FastAPI app around an AppContext.

    With no context, one is built from STOREFRONT_* environment variables
    (this is what `uvicorn --factory storefront.api:create_app` does).
    """
    context = context or build_context()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await context.aclose()

    app = FastAPI(
        title="storefront API",
        description="Orders, courier dispatch and conversion tracking",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # Handlers are coroutines so store access and background deliveries
    # share the server's event loop.

    @app.get("/api/health")
    async def health_check(ctx: AppContext = Depends(get_context)):
        """Basic service status."""
        return {
            "status": "ok",
            "version": __version__,
            "order_count": len(ctx.store.get_orders()),
            "pending_deliveries": ctx.pipeline.scheduler.pending,
        }

    # --- Catalog ---

    @app.get("/api/products", response_model=list[ProductSchema])
    async def list_products(ctx: AppContext = Depends(get_context)):
        return [ProductSchema(**p.to_dict()) for p in ctx.store.get_products()]

    @app.get("/api/categories", response_model=list[CategorySchema])
    async def list_categories(ctx: AppContext = Depends(get_context)):
        return [CategorySchema(**c.to_dict()) for c in ctx.store.get_categories()]

    # --- Orders ---

    @app.get("/api/orders", response_model=OrderListResponse)
    async def list_orders(ctx: AppContext = Depends(get_context)):
        """List all orders, newest first."""
        orders = ctx.store.get_orders()
        return OrderListResponse(
            orders=[order_to_schema(o) for o in orders], count=len(orders)
        )

    @app.get("/api/orders/{order_id}", response_model=OrderSchema)
    async def get_order(order_id: str, ctx: AppContext = Depends(get_context)):
        return order_to_schema(ctx.store.get_order(order_id))

    @app.post("/api/orders", response_model=OrderSchema, status_code=201)
    async def place_order(request: OrderCreateRequest, ctx: AppContext = Depends(get_context)):
        """Place an order from cart lines; it starts Pending."""
        order = ctx.controller.place_order(
            _cart_lines(request.items),
            CustomerDetails(**request.customer.model_dump()),
        )
        return order_to_schema(order)

    @app.post("/api/orders/{order_id}/dispatch", response_model=DispatchResponse)
    async def dispatch_order(
        order_id: str, request: DispatchBody, ctx: AppContext = Depends(get_context)
    ):
        """
        Submit an order to a courier.

        Courier failures come back with the classified message and an
        `error_kind`; the order is left unchanged and may be resubmitted.
        """
        overrides = DispatchOverrides(**request.model_dump(exclude={"courier"}))
        result = await ctx.controller.dispatch(order_id, request.courier, overrides)
        return DispatchResponse(
            order=order_to_schema(ctx.store.get_order(order_id)),
            courier=result.courier,
            tracking_id=result.tracking_id,
            message=result.message,
            simulated=result.simulated,
        )

    @app.post("/api/orders/{order_id}/status", response_model=OrderSchema)
    async def update_order_status(
        order_id: str, request: StatusUpdateRequest, ctx: AppContext = Depends(get_context)
    ):
        return order_to_schema(ctx.controller.set_status(order_id, request.status))

    @app.post("/api/orders/{order_id}/payment-status", response_model=OrderSchema)
    async def update_payment_status(
        order_id: str, request: PaymentStatusRequest, ctx: AppContext = Depends(get_context)
    ):
        return order_to_schema(
            ctx.controller.set_payment_status(order_id, request.payment_status)
        )

    # --- Couriers ---

    @app.post("/api/couriers/{courier}/verify", response_model=CourierVerifyResponse)
    async def verify_courier(courier: str, ctx: AppContext = Depends(get_context)):
        """Check the stored credentials for a courier against its API."""
        name = await ctx.controller.verify_courier(courier)
        return CourierVerifyResponse(courier=name)

    # --- Settings ---

    @app.get("/api/settings/courier", response_model=CourierSettingsSchema)
    async def get_courier_settings(ctx: AppContext = Depends(get_context)):
        return CourierSettingsSchema(**ctx.store.get_courier_settings().to_dict())

    @app.put("/api/settings/courier", response_model=CourierSettingsSchema)
    async def put_courier_settings(
        request: CourierSettingsSchema, ctx: AppContext = Depends(get_context)
    ):
        settings = CourierSettings.from_dict(request.model_dump())
        ctx.store.save_courier_settings(settings)
        return CourierSettingsSchema(**settings.to_dict())

    @app.get("/api/settings/pixel", response_model=PixelSettingsSchema)
    async def get_pixel_settings(ctx: AppContext = Depends(get_context)):
        return PixelSettingsSchema(**ctx.store.get_pixel_settings().to_dict())

    @app.put("/api/settings/pixel", response_model=PixelSettingsSchema)
    async def put_pixel_settings(
        request: PixelSettingsUpdateRequest, ctx: AppContext = Depends(get_context)
    ):
        """Save pixel settings; changing the id or token drops status to Inactive."""
        current = ctx.store.get_pixel_settings()
        settings = PixelSettings(**request.model_dump(), status=current.status)
        if (settings.pixel_id, settings.access_token) != (
            current.pixel_id,
            current.access_token,
        ):
            settings.status = PIXEL_INACTIVE
        ctx.store.save_pixel_settings(settings)
        return PixelSettingsSchema(**settings.to_dict())

    # --- Pixel ---

    @app.post("/api/pixel/connect", response_model=PixelConnectResponse)
    async def connect_pixel(ctx: AppContext = Depends(get_context)):
        settings, outcome = await ctx.controller.connect_pixel()
        return PixelConnectResponse(
            settings=PixelSettingsSchema(**settings.to_dict()),
            connected=outcome.succeeded,
            detail=outcome.error,
        )

    @app.get("/api/pixel/stats", response_model=DeliveryStatsSchema)
    async def pixel_stats(ctx: AppContext = Depends(get_context)):
        return DeliveryStatsSchema(**ctx.pipeline.stats().to_dict())

    @app.post("/api/pixel/tag/drain", response_model=TagDrainResponse)
    async def drain_tag(ctx: AppContext = Depends(get_context)):
        """Hand queued browser-tag commands to the page."""
        tag = ctx.pipeline.tag
        return TagDrainResponse(
            script_url=TAG_SCRIPT_URL,
            pixel_id=tag.pixel_id,
            commands=[TagCommandSchema(**c) for c in tag.drain()],
        )

    @app.post("/api/events/add-to-cart", status_code=202)
    async def add_to_cart(request: AddToCartRequest, ctx: AppContext = Depends(get_context)):
        ctx.controller.add_to_cart(CartLine(request.product_id, request.quantity))
        return {"accepted": True}

    @app.post("/api/events/initiate-checkout", response_model=CheckoutResponse)
    async def initiate_checkout(
        request: CheckoutRequest, ctx: AppContext = Depends(get_context)
    ):
        total = ctx.controller.begin_checkout(_cart_lines(request.items))
        return CheckoutResponse(total=total)

    # --- Notifications ---

    @app.get("/api/notifications", response_model=NotificationListResponse)
    async def list_notifications(ctx: AppContext = Depends(get_context)):
        notifications = ctx.store.get_notifications()
        return NotificationListResponse(
            notifications=[NotificationSchema(**n.to_dict()) for n in notifications],
            unread=sum(1 for n in notifications if not n.read),
        )

    @app.post("/api/notifications/read", response_model=NotificationListResponse)
    async def mark_notifications_read(ctx: AppContext = Depends(get_context)):
        ctx.store.mark_notifications_read()
        return await list_notifications(ctx)

    # --- Dashboard ---

    @app.get("/api/dashboard")
    async def dashboard(ctx: AppContext = Depends(get_context)):
        return compute_dashboard_metrics(ctx.store.get_orders()).to_dict()
