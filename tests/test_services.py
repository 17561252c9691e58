import asyncio
import re
import threading
from datetime import datetime
from types import SimpleNamespace

import pytest

from wokabulary.models import OrderStatus
from wokabulary.services.auth.mock import MockAuthService
from wokabulary.services.auth.supabase import SupabaseAuthService
from wokabulary.services.billing import compute_bill_totals
from wokabulary.services.excel_manager import ExcelManager
from wokabulary.services.notifications.mock import MockNotificationService
from wokabulary.services.ordering import can_transition, generate_bill_number
from wokabulary.tasks import export_sale_to_excel, health_check


@pytest.fixture()
def ledger():
    ExcelManager.clear_all()
    yield ExcelManager
    ExcelManager.clear_all()


def sale(order_id, total):
    return {
        "order_id": order_id,
        "bill_number": f"BILL-20250101-{order_id:04d}",
        "order_type": "DINE_IN",
        "table_number": 3,
        "created_at": "2025-01-01T12:00:00",
        "staff_name": "Wasantha Waiter",
        "items": "1x Chicken Fried Rice (Regular)",
        "item_count": 1,
        "subtotal": total,
        "service_charge": 0.0,
        "total_amount": total,
        "order_status": "COMPLETED",
    }


# =============================================================================
# BILLING
# =============================================================================

def test_bill_totals_with_service_charge():
    totals = compute_bill_totals(1000, 12.5)
    assert totals.subtotal == 1000
    assert totals.service_charge == 125
    assert totals.total == 1125


def test_bill_totals_are_rounded():
    totals = compute_bill_totals(99.99, 10)
    assert totals.service_charge == 10.0
    assert totals.total == 109.99


def test_bill_totals_without_service_charge():
    totals = compute_bill_totals(850, 0)
    assert totals.service_charge == 0
    assert totals.total == 850


def test_bill_number_format():
    number = generate_bill_number(datetime(2025, 1, 31, 18, 30))
    assert number.startswith("BILL-20250131-")
    assert re.match(r"^BILL-\d{8}-\d{4}$", number)


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

@pytest.mark.parametrize("current, target", [
    (OrderStatus.PENDING, OrderStatus.PREPARING),
    (OrderStatus.PENDING, OrderStatus.COMPLETED),
    (OrderStatus.PREPARING, OrderStatus.READY),
    (OrderStatus.PREPARING, OrderStatus.COMPLETED),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    (OrderStatus.READY, OrderStatus.COMPLETED),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize("current, target", [
    (OrderStatus.PENDING, OrderStatus.READY),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.READY, OrderStatus.PREPARING),
    (OrderStatus.READY, OrderStatus.CANCELLED),
    (OrderStatus.COMPLETED, OrderStatus.PENDING),
    (OrderStatus.CANCELLED, OrderStatus.PREPARING),
    (OrderStatus.PREPARING, OrderStatus.PREPARING),
])
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)


# =============================================================================
# SALES LEDGER
# =============================================================================

def test_ledger_starts_empty(ledger):
    assert ledger.get_all_sales() == []


def test_export_appends_rows(ledger):
    assert ledger.export_sale(sale(1, 850.0))["success"] is True
    assert ledger.export_sale(sale(2, 1250.0))["success"] is True

    rows = ledger.get_all_sales()
    assert [r["order_id"] for r in rows] == [1, 2]
    assert rows[0]["date_time"] == "2025-01-01T12:00:00"
    assert rows[0]["customer_email"] is None
    assert rows[1]["total_amount"] == 1250.0


def test_reexport_replaces_row(ledger):
    ledger.export_sale(sale(1, 850.0))
    ledger.export_sale(sale(2, 900.0))
    ledger.export_sale(sale(1, 1700.0))

    rows = ledger.get_all_sales()
    assert sorted((r["order_id"], r["total_amount"]) for r in rows) == [(1, 1700.0), (2, 900.0)]


def test_clear_removes_ledger(ledger):
    ledger.export_sale(sale(1, 850.0))
    assert ledger.ledger_path().exists()
    assert ledger.clear_all() is True
    assert not ledger.ledger_path().exists()


# =============================================================================
# TASKS
# =============================================================================

def test_export_task(ledger):
    result = export_sale_to_excel.apply(args=[sale(7, 500.0)]).get()
    assert result["success"] is True
    assert result["order_id"] == 7
    assert "processing_time_seconds" in result
    assert [r["order_id"] for r in ledger.get_all_sales()] == [7]


def test_health_check_task():
    result = health_check.apply().get()
    assert result["status"] == "healthy"
    assert result["worker"] == "celery"


# =============================================================================
# MOCK PROVIDERS
# =============================================================================

def test_mock_bill_delivery_sends_email_then_sms():
    service = MockNotificationService(failure_rate=0, max_latency=0)
    result = asyncio.run(service.send_bill(
        to_email="guest@example.com",
        subject="Your bill",
        body_html="<p>Bill</p>",
        to_phone="+94771234567",
        sms_message="Thanks!",
    ))

    assert result.email_sent
    assert result.sms_sent
    assert [m["channel"] for m in service.sent] == ["email", "sms"]


def test_mock_bill_delivery_skips_sms_when_email_fails():
    service = MockNotificationService(failure_rate=1.0, max_latency=0)
    result = asyncio.run(service.send_bill(
        to_email="guest@example.com",
        subject="Your bill",
        body_html="<p>Bill</p>",
        to_phone="+94771234567",
        sms_message="Thanks!",
    ))

    assert not result.email_sent
    assert result.email.error_message == "Simulated email failure"
    assert result.sms is None
    assert len(service.sent) == 0


def test_mock_outbox_keeps_only_latest_messages():
    service = MockNotificationService(failure_rate=0, max_latency=0, outbox_size=2)
    for n in range(3):
        asyncio.run(service.send_sms("+94771234567", f"message {n}"))

    assert [m["body"] for m in service.sent] == ["message 1", "message 2"]


def test_mock_auth_sign_up_and_sign_in():
    service = MockAuthService()

    registered = asyncio.run(service.sign_up("Cook@Wokabulary.com", "secret123"))
    assert registered.success
    assert registered.email == "cook@wokabulary.com"

    duplicate = asyncio.run(service.sign_up("cook@wokabulary.com", "other"))
    assert not duplicate.success

    signed_in = asyncio.run(service.sign_in("COOK@wokabulary.com", "secret123"))
    assert signed_in.success
    assert signed_in.user_id == registered.user_id
    assert signed_in.session["access_token"].startswith("mock_")

    rejected = asyncio.run(service.sign_in("cook@wokabulary.com", "wrong"))
    assert not rejected.success


def supabase_with_fake_client(calls):
    """SupabaseAuthService whose client records the thread each call runs on."""
    def respond(method):
        def call(credentials):
            calls.append((method, threading.get_ident()))
            user = SimpleNamespace(id="auth-1", email=credentials["email"])
            return SimpleNamespace(user=user, session=None)
        return call

    service = SupabaseAuthService.__new__(SupabaseAuthService)
    service.client = SimpleNamespace(auth=SimpleNamespace(
        sign_in_with_password=respond("sign_in"),
        sign_up=respond("sign_up"),
    ))
    return service


def test_supabase_calls_run_off_the_event_loop_thread():
    calls = []
    service = supabase_with_fake_client(calls)

    signed_in = asyncio.run(service.sign_in("cook@wokabulary.com", "secret123"))
    registered = asyncio.run(service.sign_up("chef@wokabulary.com", "secret123"))

    assert signed_in.success and signed_in.user_id == "auth-1"
    assert registered.success and registered.email == "chef@wokabulary.com"
    assert [method for method, _ in calls] == ["sign_in", "sign_up"]
    assert all(thread != threading.get_ident() for _, thread in calls)
