import json

import pytest
from razorpay.errors import BadRequestError
from sqlmodel import Session

from app.database import engine
from app.exceptions import (
    BusinessRuleViolation,
    InvalidInput,
    InvalidPaymentMethod,
    NotFound,
    Unauthorized,
    UpstreamFailure,
    UpstreamRejected,
)
from app.models.order import Order, OrderStatus
from app.models.payment import Payment, PaymentStatus
from app.services import contract_ledger, order_service, payment_service
from app.services.notification_service import admin_feed_query
from app.services.order_service import RequestedItem


@pytest.fixture
def gateway_order(session, customer, lounge, make_food):
    food = make_food(price=50)
    return order_service.create_order(
        session,
        user=customer,
        lounge_id=lounge.id,
        items=[RequestedItem(food.id, 2)],
        payment_method="razorpay",
        commission_rate=0.05,
    )


@pytest.fixture
def initialized(session, customer, gateway, gateway_order):
    handle = payment_service.initialize_payment(
        session, user=customer, payment_id=gateway_order.payment_id, gateway=gateway
    )
    return session.get(Payment, gateway_order.payment_id), handle


def webhook_body(gateway_reference, payment_id="pay_fake_1"):
    return json.dumps(
        {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": payment_id, "order_id": gateway_reference}}},
        }
    ).encode()


def admin_notifications(session, trigger):
    return session.exec(admin_feed_query(trigger_source=trigger)).all()


class TestInitialize:
    def test_stores_gateway_reference_and_tx_ref(self, session, gateway, initialized):
        payment, handle = initialized

        assert handle.gateway_reference == "order_fake_1"
        assert handle.amount == 100
        assert payment.gateway_reference == "order_fake_1"
        assert payment.tx_ref.startswith("CE-")
        assert payment.tx_ref.endswith(f"-{payment.id}")

        amount, payer, reference = gateway.initialized[0]
        assert amount == 100
        assert payer["first_name"] == "Abebe"
        assert reference == payment.tx_ref

    def test_second_initialize_reuses_reference(self, session, customer, gateway, initialized):
        payment, _ = initialized

        handle = payment_service.initialize_payment(
            session, user=customer, payment_id=payment.id, gateway=gateway
        )

        assert handle.gateway_reference == "order_fake_1"
        assert len(gateway.initialized) == 1

    def test_only_owner_can_initialize(self, session, owner, gateway, gateway_order):
        with pytest.raises(Unauthorized):
            payment_service.initialize_payment(
                session, user=owner, payment_id=gateway_order.payment_id, gateway=gateway
            )

    def test_unknown_payment(self, session, customer, gateway):
        with pytest.raises(NotFound):
            payment_service.initialize_payment(session, user=customer, payment_id=404, gateway=gateway)

    def test_wallet_payment_cannot_be_initialized(self, session, customer, gateway, lounge, make_food, make_contract):
        contract = make_contract(customer, balance=100)
        order = order_service.create_order(
            session,
            user=customer,
            lounge_id=lounge.id,
            items=[RequestedItem(make_food().id, 1)],
            payment_method="contract",
            commission_rate=0.05,
            contract_id=contract.id,
        )

        with pytest.raises(BusinessRuleViolation):
            payment_service.initialize_payment(
                session, user=customer, payment_id=order.payment_id, gateway=gateway
            )

    def test_failed_payment_cannot_be_initialized(self, session, customer, gateway, gateway_order):
        payment = session.get(Payment, gateway_order.payment_id)
        payment.status = PaymentStatus.failed
        session.add(payment)
        session.commit()

        with pytest.raises(BusinessRuleViolation):
            payment_service.initialize_payment(
                session, user=customer, payment_id=payment.id, gateway=gateway
            )

    def test_method_must_match_gateway(self, session, customer, gateway, gateway_order):
        payment = session.get(Payment, gateway_order.payment_id)
        payment.method = "chapa"
        session.add(payment)
        session.commit()

        with pytest.raises(InvalidPaymentMethod):
            payment_service.initialize_payment(
                session, user=customer, payment_id=payment.id, gateway=gateway
            )


class TestOrderSettlement:
    def test_success_completes_payment_and_advances_order(self, session, gateway, initialized, push):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference, "pay_abc")

        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.completed
        assert payment.gateway_transaction_id == "pay_abc"
        assert payment.gateway_response["status"] == "captured"
        assert session.get(Order, payment.order_id).status == OrderStatus.preparing
        assert len(admin_notifications(session, "payment_success")) == 1
        assert "Order Confirmed" in [n["title"] for _, n, _ in push.sent]

    def test_duplicate_webhook_advances_once(self, session, gateway, initialized, push):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference)
        body = webhook_body(payment.gateway_reference)

        for _ in range(3):
            payment_service.handle_webhook(
                session, body=body, signature="valid-signature", gateway=gateway
            )

        assert session.get(Payment, payment.id).status == PaymentStatus.completed
        assert len(admin_notifications(session, "payment_success")) == 1
        assert [n["title"] for _, n, _ in push.sent].count("Order Confirmed") == 1
        # later deliveries short-circuit before asking the gateway
        assert len(gateway.verify_calls) == 1

    def test_webhook_and_poll_race(self, gateway, initialized):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference)

        with Session(engine) as webhook_session, Session(engine) as poll_session:
            stale_a = webhook_session.get(Payment, payment.id)
            stale_b = poll_session.get(Payment, payment.id)
            assert stale_a.status == stale_b.status == PaymentStatus.pending

            payment_service.reconcile_payment(webhook_session, payment=stale_a, gateway=gateway)
            payment_service.reconcile_payment(poll_session, payment=stale_b, gateway=gateway)

            assert stale_b.status == PaymentStatus.completed

        with Session(engine) as check:
            assert len(admin_notifications(check, "payment_success")) == 1
            assert check.get(Order, payment.order_id).status == OrderStatus.preparing

    def test_declined_payment_fails_without_side_effects(self, session, gateway, initialized):
        payment, _ = initialized
        gateway.decline(payment.gateway_reference)

        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.failed
        assert session.get(Order, payment.order_id).status == OrderStatus.pending
        assert admin_notifications(session, "payment_success") == []

    def test_pending_at_gateway_changes_nothing(self, session, gateway, initialized):
        payment, _ = initialized

        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.pending
        assert len(gateway.verify_calls) == 1

    def test_gateway_outage_leaves_payment_pending(self, session, gateway, initialized):
        payment, _ = initialized
        gateway.error = UpstreamFailure()

        with pytest.raises(UpstreamFailure):
            payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        session.refresh(payment)
        assert payment.status == PaymentStatus.pending

    def test_uninitialized_payment_is_not_sent_to_gateway(self, session, gateway, gateway_order):
        payment = session.get(Payment, gateway_order.payment_id)

        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.pending
        assert gateway.verify_calls == []

    def test_capture_after_recorded_failure_completes(self, session, gateway, initialized):
        payment, _ = initialized
        gateway.decline(payment.gateway_reference)
        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)
        assert payment.status == PaymentStatus.failed

        gateway.succeed(payment.gateway_reference, "pay_retry")
        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.completed
        assert payment.gateway_transaction_id == "pay_retry"
        assert session.get(Order, payment.order_id).status == OrderStatus.preparing

    def test_capture_for_cancelled_order_does_not_revive_it(self, session, customer, gateway, initialized):
        payment, _ = initialized
        order_service.cancel_order(session, user=customer, order_id=payment.order_id)
        session.refresh(payment)
        assert payment.status == PaymentStatus.failed

        gateway.succeed(payment.gateway_reference)
        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.completed
        assert session.get(Order, payment.order_id).status == OrderStatus.cancelled
        assert admin_notifications(session, "payment_success") == []

    def test_completed_payment_is_never_reverified(self, session, gateway, initialized):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference)
        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        gateway.decline(payment.gateway_reference)
        payment_service.reconcile_payment(session, payment=payment, gateway=gateway)

        assert payment.status == PaymentStatus.completed
        assert len(gateway.verify_calls) == 1


class TestRazorpayRetry:
    def test_failed_attempt_then_capture_in_same_checkout(
        self, session, customer, razorpay_gateway, gateway_order
    ):
        payment = session.get(Payment, gateway_order.payment_id)
        payment_service.initialize_payment(
            session, user=customer, payment_id=payment.id, gateway=razorpay_gateway
        )
        orders = razorpay_gateway.client.order

        orders.payments_response = {"items": [{"id": "pay_1", "status": "failed"}]}
        payment_service.reconcile_payment(session, payment=payment, gateway=razorpay_gateway)

        assert payment.status == PaymentStatus.pending
        assert session.get(Order, payment.order_id).status == OrderStatus.pending

        orders.payments_response = {
            "items": [
                {"id": "pay_1", "status": "failed"},
                {"id": "pay_2", "status": "captured"},
            ]
        }
        payment_service.reconcile_payment(session, payment=payment, gateway=razorpay_gateway)

        assert payment.status == PaymentStatus.completed
        assert payment.gateway_transaction_id == "pay_2"
        assert session.get(Order, payment.order_id).status == OrderStatus.preparing

    def test_refused_verification_leaves_payment_pending(
        self, session, customer, razorpay_gateway, gateway_order
    ):
        payment = session.get(Payment, gateway_order.payment_id)
        payment_service.initialize_payment(
            session, user=customer, payment_id=payment.id, gateway=razorpay_gateway
        )
        razorpay_gateway.client.order.payments_error = BadRequestError("Authentication failed")

        with pytest.raises(UpstreamRejected):
            payment_service.reconcile_payment(session, payment=payment, gateway=razorpay_gateway)

        session.refresh(payment)
        assert payment.status == PaymentStatus.pending


class TestContractSettlement:
    def test_funding_payment_activates_contract_once(self, session, customer, lounge, gateway):
        contract, payment = contract_ledger.create_contract(
            session, user=customer, lounge_id=lounge.id, total_amount=500
        )
        payment_service.initialize_payment(session, user=customer, payment_id=payment.id, gateway=gateway)
        gateway.succeed(payment.gateway_reference)
        body = webhook_body(payment.gateway_reference)

        payment_service.handle_webhook(session, body=body, signature="valid-signature", gateway=gateway)
        payment_service.handle_webhook(session, body=body, signature="valid-signature", gateway=gateway)

        session.refresh(contract)
        assert contract.is_active is True
        assert contract.remaining_balance == 500
        assert len(admin_notifications(session, "contract_activated")) == 1


class TestWebhook:
    def test_missing_signature(self, session, gateway):
        with pytest.raises(InvalidInput):
            payment_service.handle_webhook(session, body=b"{}", signature=None, gateway=gateway)

    def test_bad_signature(self, session, gateway, initialized):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference)

        with pytest.raises(InvalidInput):
            payment_service.handle_webhook(
                session, body=webhook_body(payment.gateway_reference),
                signature="forged", gateway=gateway,
            )

        session.refresh(payment)
        assert payment.status == PaymentStatus.pending

    def test_malformed_payload(self, session, gateway):
        with pytest.raises(InvalidInput):
            payment_service.handle_webhook(
                session, body=b'{"event": "payment.captured"}',
                signature="valid-signature", gateway=gateway,
            )

    def test_unknown_reference_is_acknowledged(self, session, gateway):
        result = payment_service.handle_webhook(
            session, body=webhook_body("order_unknown"),
            signature="valid-signature", gateway=gateway,
        )

        assert result is None
        assert gateway.verify_calls == []

    def test_body_that_is_not_utf8(self, session, gateway):
        with pytest.raises(InvalidInput):
            payment_service.handle_webhook(
                session, body=b"\xff\xfe{\"event\"}", signature="valid-signature", gateway=gateway,
            )

    def test_body_claims_are_ignored(self, session, gateway, initialized):
        payment, _ = initialized
        gateway.decline(payment.gateway_reference)

        payment_service.handle_webhook(
            session, body=webhook_body(payment.gateway_reference),
            signature="valid-signature", gateway=gateway,
        )

        assert session.get(Payment, payment.id).status == PaymentStatus.failed


class TestVerifyPayment:
    def test_owner_poll(self, session, customer, gateway, initialized):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference)

        result = payment_service.verify_payment(
            session, user=customer, payment_id=payment.id, gateway=gateway
        )
        assert result.status == PaymentStatus.completed

    def test_stranger_poll(self, session, owner, gateway, initialized):
        payment, _ = initialized

        with pytest.raises(Unauthorized):
            payment_service.verify_payment(session, user=owner, payment_id=payment.id, gateway=gateway)

    def test_admin_poll(self, session, admin, gateway, initialized):
        payment, _ = initialized
        gateway.succeed(payment.gateway_reference)

        result = payment_service.verify_payment(session, user=admin, payment_id=payment.id, gateway=gateway)
        assert result.status == PaymentStatus.completed
