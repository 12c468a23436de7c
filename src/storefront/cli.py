"""Command-line interface for storefront."""

import argparse
import asyncio
import json
import math
import os
import sys
from pathlib import Path

from . import __version__
from .app import AppContext, build_context
from .config import AppConfig, configure_logging
from .couriers import DispatchOverrides
from .errors import CourierError, StorefrontError
from .models import ORDER_STATUSES, Order


def finite_float(value: str) -> float:
    """argparse type for amounts and weights; rejects inf and nan."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not math.isfinite(number):
        raise argparse.ArgumentTypeError(f"must be a finite number: {value!r}")
    return number


def get_context(args: argparse.Namespace) -> AppContext:
    """Build the AppContext for this invocation."""
    data_dir = Path(args.data_dir) if args.data_dir else None
    return build_context(AppConfig.from_env(data_dir=data_dir))


def format_order(order: Order, verbose: bool = False) -> str:
    """Format an order for one-line display."""
    line = (
        f"{order.id}  {order.order_status:<10}  {order.payment_status:<8}  "
        f"TK{order.total_price:,.2f}  {order.customer_name}"
    )
    if order.is_dispatched:
        line += f"  [{order.courier_name} {order.courier_tracking_id}]"
    if verbose:
        line += f"\n    {order.customer_phone}  {order.full_address}"
        for item in order.items:
            line += f"\n    {item.quantity} x {item.product.name} @ {item.product.price:g}"
    return line


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List orders, newest first."""
    try:
        ctx = get_context(args)
        orders = ctx.store.get_orders()
        if args.status:
            orders = [o for o in orders if o.order_status == args.status]

        if not orders:
            print("No orders found.")
            return 0

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
        else:
            print(f"Orders ({len(orders)}):")
            for order in orders:
                print(format_order(order, verbose=args.verbose))
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_dispatch(args: argparse.Namespace) -> int:
    """Dispatch an order to a courier."""
    try:
        ctx = get_context(args)
        overrides = DispatchOverrides(
            recipient_phone=args.phone,
            recipient_address=args.address,
            cod_amount=args.cod,
            weight=args.weight,
            note=args.note,
        )
        result = asyncio.run(ctx.controller.dispatch(args.order_id, args.courier, overrides))

        suffix = " (simulated)" if result.simulated else ""
        print(f"Dispatched {args.order_id} via {result.courier}{suffix}")
        print(f"Tracking ID: {result.tracking_id}")
        if result.message:
            print(result.message)
        return 0

    except CourierError as e:
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        return 1
    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_status(args: argparse.Namespace) -> int:
    """Change an order's status or payment status."""
    try:
        ctx = get_context(args)
        if not args.status and not args.payment:
            print("Error: give a status and/or --payment", file=sys.stderr)
            return 1

        order = ctx.store.get_order(args.order_id)
        if args.status:
            order = ctx.controller.set_status(args.order_id, args.status)
        if args.payment:
            order = ctx.controller.set_payment_status(args.order_id, args.payment)
        print(format_order(order))
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_courier_verify(args: argparse.Namespace) -> int:
    """Verify stored courier credentials."""
    try:
        ctx = get_context(args)
        name = asyncio.run(ctx.controller.verify_courier(args.courier))
        print(f"{name} credentials verified")
        return 0

    except CourierError as e:
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        return 1
    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_pixel_connect(args: argparse.Namespace) -> int:
    """Health-check the pixel settings and update their status."""
    try:
        ctx = get_context(args)
        settings, outcome = asyncio.run(ctx.controller.connect_pixel())
        if not outcome.succeeded:
            print(f"Error: pixel connection failed: {outcome.error}", file=sys.stderr)
            return 1
        print(f"Pixel {settings.pixel_id} is {settings.status}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_reset(args: argparse.Namespace) -> int:
    """Replace all stored data with the seed dataset."""
    if not args.yes:
        print("Error: reset discards all orders and settings; pass --yes", file=sys.stderr)
        return 1
    try:
        ctx = get_context(args)
        ctx.store.reset()
        print(f"Reset {ctx.config.snapshot_path} to seed data")
        return 0

    except (StorefrontError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        config = AppConfig.from_env(
            data_dir=Path(args.data_dir) if args.data_dir else None
        )
        print("Starting storefront API server...")
        print(f"Data: {config.snapshot_path}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        if args.data_dir:
            # The factory reads its config from the environment
            os.environ["STOREFRONT_DATA_DIR"] = str(config.data_dir)

        uvicorn.run(
            "storefront.api:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker: one store, one event loop
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront orders, courier dispatch and conversion tracking.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--data-dir", help="Directory holding storefront.json (default: STOREFRONT_DATA_DIR)"
    )
    parser.add_argument(
        "--log-level", help="Logging level (default: STOREFRONT_LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=8000, help="Port to bind (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # orders
    orders_parser = subparsers.add_parser("orders", help="Manage orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument(
        "--status", "-s", choices=ORDER_STATUSES, help="Only orders with this status"
    )
    orders_list_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show items and address"
    )
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    dispatch_parser = orders_subparsers.add_parser(
        "dispatch", help="Send an order to a courier"
    )
    dispatch_parser.add_argument("order_id", help="Order ID")
    dispatch_parser.add_argument("courier", help="Courier name (Pathao or SteadFast)")
    dispatch_parser.add_argument("--phone", help="Override recipient phone")
    dispatch_parser.add_argument("--address", help="Override recipient address")
    dispatch_parser.add_argument(
        "--cod", type=finite_float, help="Override cash-on-delivery amount"
    )
    dispatch_parser.add_argument("--weight", type=finite_float, help="Parcel weight in kg")
    dispatch_parser.add_argument("--note", help="Delivery note")

    status_parser = orders_subparsers.add_parser(
        "status", help="Change an order's status"
    )
    status_parser.add_argument("order_id", help="Order ID")
    status_parser.add_argument(
        "status", nargs="?", help="New status (Processing, Delivered or Cancelled)"
    )
    status_parser.add_argument(
        "--payment", "-p", help="New payment status (Paid, Pending or Cancel)"
    )

    # courier
    courier_parser = subparsers.add_parser("courier", help="Courier integrations")
    courier_subparsers = courier_parser.add_subparsers(dest="courier_command")
    verify_parser = courier_subparsers.add_parser(
        "verify", help="Verify stored courier credentials"
    )
    verify_parser.add_argument("courier", help="Courier name (Pathao or SteadFast)")

    # pixel
    pixel_parser = subparsers.add_parser("pixel", help="Conversion tracking")
    pixel_subparsers = pixel_parser.add_subparsers(dest="pixel_command")
    pixel_subparsers.add_parser("connect", help="Health-check pixel settings")

    # reset
    reset_parser = subparsers.add_parser("reset", help="Reset data to the seed dataset")
    reset_parser.add_argument("--yes", "-y", action="store_true", help="Confirm the reset")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging((args.log_level or AppConfig.from_env().log_level).upper())

    # Handle grouped subcommands
    groups = {
        "orders": ("orders_command", {
            "list": cmd_orders_list,
            "dispatch": cmd_orders_dispatch,
            "status": cmd_orders_status,
        }),
        "courier": ("courier_command", {"verify": cmd_courier_verify}),
        "pixel": ("pixel_command", {"connect": cmd_pixel_connect}),
    }
    if args.command in groups:
        dest, handlers = groups[args.command]
        sub = getattr(args, dest, None)
        if not sub:
            parser.parse_args([args.command, "--help"])
            return 0
        return handlers[sub](args)

    commands = {
        "serve": cmd_serve,
        "reset": cmd_reset,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
