"""WebhookProcessor: idempotência, busca fail-closed, benefícios e assinatura."""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from pixpay.db.models import PAID, PENDING, Group, Payment
from pixpay.db.session import build_engine, create_all_tables, get_session
from pixpay.errors import AuthError, NotFoundError
from pixpay.payments.collaborators import SqlEntitlementUpdater
from pixpay.payments.store import PaymentStore
from pixpay.payments.webhook import (
    Notification,
    WebhookProcessor,
    sign,
    verify_signature,
)

T0 = datetime(2025, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


def _seed_payment(store, plan_type="premium", duration_days=30, external_id="tx-1", amount=4999):
    return store.create(
        Payment(
            external_id=external_id,
            user_id="u1",
            group_id="g1",
            plan_type=plan_type,
            duration_days=duration_days,
            amount=amount,
            pix_code="000201",
            created_at=T0,
            expires_at=T0 + timedelta(hours=1),
        )
    )


def _group(engine, group_id="g1") -> Group:
    with get_session(engine) as session:
        return session.get(Group, group_id)


@pytest.fixture
def processor(store, clock):
    return WebhookProcessor(store, SqlEntitlementUpdater(), clock=clock)


def test_paid_notification_transitions_and_applies_entitlement(processor, store, engine, clock):
    payment = _seed_payment(store)
    clock.advance(minutes=20)

    result = processor.handle(Notification(transaction_id="tx-1", status="paid", amount_cents=4999))

    assert result.processed is True
    assert result.as_dict() == {"received": True, "processed": True, "groupId": "g1", "planType": "premium"}
    stored = store.get(payment.id)
    assert stored.status == PAID
    assert stored.paid_at == clock.now
    group = _group(engine)
    assert group.is_premium is True
    assert group.is_featured is False
    # Prazo a partir da confirmação, não da criação
    assert group.premium_expires_at == clock.now + timedelta(days=30)


def test_duplicate_delivery_is_acknowledged_without_reapplying(store, clock):
    _seed_payment(store)
    entitlements = MagicMock()
    processor = WebhookProcessor(store, entitlements, clock=clock)
    notification = Notification(transaction_id="tx-1", status="paid")

    first = processor.handle(notification)
    clock.advance(days=1)
    second = processor.handle(notification)

    assert first.processed is True
    assert second.processed is False
    assert second.as_dict() == {"received": True, "processed": False}
    assert entitlements.apply.call_count == 1


def test_non_paid_status_is_acknowledged_only(processor, store):
    payment = _seed_payment(store)
    result = processor.handle(Notification(transaction_id="tx-1", status="pending"))
    assert result.processed is False
    assert store.get(payment.id).status == PENDING


def test_unknown_transaction_is_not_found(processor, store):
    _seed_payment(store)
    with pytest.raises(NotFoundError):
        processor.handle(Notification(transaction_id="tx-999", status="paid"))
    with pytest.raises(NotFoundError):
        processor.handle(Notification(transaction_id="", status="paid"))


def test_non_paid_unknown_transaction_is_still_acknowledged(processor):
    result = processor.handle(Notification(transaction_id="tx-999", status="cancelled"))
    assert result.processed is False


@pytest.mark.parametrize(
    "plan_type,duration,premium,featured",
    [("featured", 7, True, True), ("boost", 3, False, False)],
)
def test_entitlement_per_plan(processor, store, engine, clock, plan_type, duration, premium, featured):
    _seed_payment(store, plan_type=plan_type, duration_days=duration)
    processor.handle(Notification(transaction_id="tx-1", status="approved"))

    group = _group(engine)
    assert group.is_premium is premium
    assert group.is_featured is featured
    assert group.premium_expires_at == clock.now + timedelta(days=duration)


def test_lost_race_is_treated_as_duplicate(store, clock):
    payment = _seed_payment(store)
    entitlements = MagicMock()
    processor = WebhookProcessor(store, entitlements, clock=clock)
    # Outra entrega confirma entre a leitura e o compare-and-set
    original_mark_paid = store.mark_paid

    def racing_mark_paid(payment_id, paid_at, on_paid=None):
        original_mark_paid(payment_id, paid_at)
        return original_mark_paid(payment_id, paid_at, on_paid=on_paid)

    store.mark_paid = racing_mark_paid
    result = processor.handle(Notification(transaction_id="tx-1", status="paid"))

    assert result.processed is False
    assert entitlements.apply.call_count == 0
    assert store.get(payment.id).status == PAID


def test_entitlement_failure_keeps_payment_pending(store, clock):
    payment = _seed_payment(store)
    entitlements = MagicMock()
    entitlements.apply.side_effect = RuntimeError("banco fora")
    processor = WebhookProcessor(store, entitlements, clock=clock)

    with pytest.raises(RuntimeError):
        processor.handle(Notification(transaction_id="tx-1", status="paid"))
    assert store.get(payment.id).status == PENDING

    entitlements.apply.side_effect = None
    assert processor.handle(Notification(transaction_id="tx-1", status="paid")).processed is True


def test_amount_mismatch_does_not_block(processor, store, caplog):
    payment = _seed_payment(store)
    result = processor.handle(Notification(transaction_id="tx-1", status="paid", amount_cents=100))
    assert result.processed is True
    assert store.get(payment.id).status == PAID
    assert "Valor divergente" in caplog.text


def test_concurrent_duplicate_deliveries_apply_once(tmp_path, clock):
    engine = build_engine(f"sqlite:///{tmp_path / 'webhook.db'}")
    create_all_tables(engine)
    with get_session(engine) as session:
        session.add(Group(id="g1", title="Grupo"))
        session.commit()
    store = PaymentStore(engine)
    _seed_payment(store)
    entitlements = MagicMock()
    processor = WebhookProcessor(store, entitlements, clock=clock)

    workers = 5
    barrier = threading.Barrier(workers)
    results = []

    def deliver():
        barrier.wait()
        results.append(processor.handle(Notification(transaction_id="tx-1", status="paid")))

    threads = [threading.Thread(target=deliver) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert [r.processed for r in results].count(True) == 1
    assert entitlements.apply.call_count == 1
    engine.dispose()


class TestNotificationPayload:
    def test_from_provider_fields(self):
        n = Notification.from_payload({
            "transactionId": "tx-1",
            "status": "approved",
            "amount": 49.99,
            "externalReference": "u1-g1-1",
        })
        assert n.transaction_id == "tx-1"
        assert n.status == "paid"
        assert n.amount_cents == 4999
        assert n.external_reference == "u1-g1-1"

    def test_status_normalized_when_built_directly(self):
        assert Notification(transaction_id="tx-1", status="APPROVED").status == "paid"
        assert Notification(transaction_id="tx-1", status=" paid ").status == "paid"
        assert Notification(transaction_id="tx-1", status="canceled").status == "cancelled"

    @pytest.mark.parametrize("raw", ["confirmed", "completed", "concluida"])
    def test_only_paid_and_approved_confirm(self, raw):
        n = Notification.from_payload({"transactionId": "tx-1", "status": raw})
        assert n.status != "paid"

    def test_non_finite_amount_is_ignored(self):
        assert Notification.from_payload({"transactionId": "tx-1", "amount": float("nan")}).amount_cents == 0

    def test_aliases_and_missing_fields(self):
        n = Notification.from_payload({"id": " tx-2 ", "status": "created"})
        assert n.transaction_id == "tx-2"
        assert n.status == "pending"
        assert n.amount_cents == 0

        assert Notification.from_payload({}).transaction_id == ""


class TestSignature:
    def test_valid_signature_with_and_without_prefix(self):
        body = b'{"transactionId":"tx-1","status":"paid"}'
        digest = sign("segredo", body)
        verify_signature("segredo", body, digest)
        verify_signature("segredo", body, f"sha256={digest}")

    def test_invalid_or_missing_signature(self):
        body = b"{}"
        with pytest.raises(AuthError):
            verify_signature("segredo", body, "deadbeef")
        with pytest.raises(AuthError):
            verify_signature("segredo", body, None)

    def test_processor_skips_check_without_secret(self, store):
        WebhookProcessor(store, SqlEntitlementUpdater()).verify(b"{}", {})

    def test_processor_enforces_secret(self, store):
        processor = WebhookProcessor(store, SqlEntitlementUpdater(), secret="segredo")
        with pytest.raises(AuthError):
            processor.verify(b"{}", {})
        processor.verify(b"{}", {"x-pushinpay-signature": sign("segredo", b"{}")})


def test_status_synonym_outside_paid_signals_is_only_acknowledged(processor, store, engine):
    payment = _seed_payment(store)
    result = processor.handle(Notification.from_payload({"transactionId": "tx-1", "status": "completed"}))

    assert result.processed is False
    assert store.get(payment.id).status == PENDING
    assert _group(engine).is_premium is False
