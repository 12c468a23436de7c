"""Tests for the CLI."""

import json
import subprocess
import sys

import pytest

from storefront.cli import main
from storefront.config import AppConfig
from storefront.lifecycle import CartLine
from storefront.record_store import RecordStore


def run(temp_dir, *args):
    return main(["--data-dir", str(temp_dir), *args])


@pytest.fixture
def order_id(make_context, customer):
    ctx = make_context()
    return ctx.controller.place_order([CartLine("1", 1)], customer).id


class TestOrdersCommands:
    def test_list_empty(self, temp_dir, capsys):
        assert run(temp_dir, "orders", "list") == 0

        assert "No orders found." in capsys.readouterr().out

    def test_list_json(self, temp_dir, order_id, capsys):
        assert run(temp_dir, "orders", "list", "--json") == 0

        data = json.loads(capsys.readouterr().out)
        assert [o["id"] for o in data] == [order_id]

    def test_list_verbose(self, temp_dir, order_id, capsys):
        assert run(temp_dir, "orders", "list", "-v") == 0

        out = capsys.readouterr().out
        assert order_id in out
        assert "Pending" in out
        assert "1 x Nature Shampoo Bar - Single Box" in out

    def test_dispatch_simulated(self, temp_dir, order_id, capsys, monkeypatch):
        monkeypatch.setenv("STOREFRONT_SIMULATION_DELAY", "0")

        assert run(temp_dir, "orders", "dispatch", order_id, "SteadFast") == 0

        out = capsys.readouterr().out
        assert "(simulated)" in out
        assert "Tracking ID: STF-" in out
        store = RecordStore(AppConfig(data_dir=temp_dir).snapshot_path)
        assert store.get_order(order_id).order_status == "Shipped"

    def test_dispatch_rejects_infinite_cod(self, temp_dir, order_id, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run(temp_dir, "orders", "dispatch", order_id, "SteadFast", "--cod", "inf")

        assert exc_info.value.code == 2
        assert "must be a finite number" in capsys.readouterr().err

    def test_dispatch_missing_order(self, temp_dir, capsys):
        assert run(temp_dir, "orders", "dispatch", "nope", "SteadFast") == 1

        assert "Error: Order not found: nope" in capsys.readouterr().err

    def test_status_and_payment(self, temp_dir, order_id, capsys):
        assert run(temp_dir, "orders", "status", order_id, "Processing", "--payment", "Paid") == 0

        out = capsys.readouterr().out
        assert "Processing" in out
        assert "Paid" in out

    def test_invalid_status(self, temp_dir, order_id, capsys):
        assert run(temp_dir, "orders", "status", order_id, "Delivered") == 1

        assert "cannot move from Pending to Delivered" in capsys.readouterr().err


class TestOtherCommands:
    def test_courier_verify_without_credentials(self, temp_dir, capsys):
        assert run(temp_dir, "courier", "verify", "Pathao") == 1

        assert "Error (authentication)" in capsys.readouterr().err

    def test_unknown_courier(self, temp_dir, capsys):
        assert run(temp_dir, "courier", "verify", "RedX") == 1

        assert "Unknown courier" in capsys.readouterr().err

    def test_pixel_connect_without_settings(self, temp_dir, capsys):
        assert run(temp_dir, "pixel", "connect") == 1

        assert "pixel connection failed" in capsys.readouterr().err

    def test_reset_requires_confirmation(self, temp_dir, order_id, capsys):
        assert run(temp_dir, "reset") == 1
        assert run(temp_dir, "reset", "--yes") == 0

        store = RecordStore(AppConfig(data_dir=temp_dir).snapshot_path)
        assert store.get_orders() == []

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0

        assert "usage: storefront" in capsys.readouterr().out


def test_module_entry_point_version():
    result = subprocess.run(
        [sys.executable, "-m", "storefront", "--version"],
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0
    assert "storefront 0.1.0" in result.stdout
