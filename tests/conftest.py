import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.database import engine
from app.exceptions import InvalidInput
from app.main import app
from app.models.contract import Contract
from app.models.food import Food
from app.models.lounge import Lounge
from app.models.user import User, UserRole
from app.services.payment_gateway import (
    CheckoutHandle,
    GatewayVerification,
    RazorpayGateway,
    get_payment_gateway,
)
from app.services.push_service import set_push_sender
from app.utils.token import create_access_token


class FakeGateway:
    name = "razorpay"
    key_id = "rzp_test_key"

    def __init__(self):
        self.outcomes = {}
        self.initialized = []
        self.verify_calls = []
        self.error = None

    def initialize(self, *, amount, payer, reference):
        gateway_reference = f"order_fake_{len(self.initialized) + 1}"
        self.initialized.append((amount, payer, reference))
        return CheckoutHandle(
            gateway_reference=gateway_reference,
            amount=amount,
            currency="INR",
            key_id=self.key_id,
        )

    def verify(self, gateway_reference):
        self.verify_calls.append(gateway_reference)
        if self.error:
            raise self.error
        return self.outcomes.get(gateway_reference, GatewayVerification(status="pending"))

    def succeed(self, gateway_reference, transaction_id="pay_fake_1"):
        self.outcomes[gateway_reference] = GatewayVerification(
            status="success",
            transaction_id=transaction_id,
            data={"id": transaction_id, "status": "captured"},
        )

    def decline(self, gateway_reference):
        self.outcomes[gateway_reference] = GatewayVerification(
            status="failed", data={"status": "failed"}
        )

    def verify_webhook_signature(self, body, signature):
        if signature != "valid-signature":
            raise InvalidInput("Invalid webhook signature")


class StubRazorpayOrders:
    """Stands in for razorpay.Client().order."""

    def __init__(self):
        self.created = []
        self.payments_response = {"items": []}
        self.create_error = None
        self.payments_error = None

    def create(self, data):
        if self.create_error:
            raise self.create_error
        self.created.append(data)
        return {"id": f"order_Lx{len(self.created)}", "amount": data["amount"], "status": "created"}

    def payments(self, order_id):
        if self.payments_error:
            raise self.payments_error
        return self.payments_response


class StubRazorpayClient:
    def __init__(self):
        self.order = StubRazorpayOrders()


class RecordingPush:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, device_token, notification, data=None):
        if self.fail:
            raise RuntimeError("FCM down")
        self.sent.append((device_token, notification, data or {}))
        return True


@pytest.fixture(autouse=True)
def db():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(db):
    with Session(engine) as session:
        yield session


@pytest.fixture(autouse=True)
def push():
    sender = RecordingPush()
    set_push_sender(sender)
    yield sender
    set_push_sender(None)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def razorpay_gateway():
    gw = RazorpayGateway("rzp_test_key", "rzp_test_secret", webhook_secret="whsec_test")
    gw.client = StubRazorpayClient()
    return gw


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# -------------------------
# FACTORIES
# -------------------------

@pytest.fixture
def make_user(session):
    def _make(name="Abebe Kebede", role=UserRole.USER, phone="0911000000", fcm_token="device-1"):
        user = User(name=name, phone=phone, role=role, fcm_token=fcm_token)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def owner(make_user):
    return make_user(name="Lounge Owner", role=UserRole.LOUNGE, phone="0911000001", fcm_token=None)


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", role=UserRole.ADMIN, phone="0911000002", fcm_token=None)


@pytest.fixture
def lounge(session, owner):
    lounge = Lounge(name="Main Lounge", owner_id=owner.id, is_approved=True)
    session.add(lounge)
    session.commit()
    session.refresh(lounge)
    return lounge


@pytest.fixture
def make_food(session, lounge):
    def _make(name="Shiro", price=50.0, is_available=True, lounge_id=None, estimated_time=15):
        food = Food(
            lounge_id=lounge_id or lounge.id,
            name=name,
            price=price,
            is_available=is_available,
            estimated_time=estimated_time,
        )
        session.add(food)
        session.commit()
        session.refresh(food)
        return food
    return _make


@pytest.fixture
def make_contract(session, lounge):
    def _make(user, balance=100.0, total=None, is_active=True, expires_at=None, lounge_id=None):
        contract = Contract(
            user_id=user.id,
            lounge_id=lounge_id or lounge.id,
            total_amount=total if total is not None else balance,
            remaining_balance=balance,
            expires_at=expires_at or datetime.utcnow() + timedelta(days=30),
            is_active=is_active,
        )
        session.add(contract)
        session.commit()
        session.refresh(contract)
        return contract
    return _make


def auth_headers(user):
    token = create_access_token(user)
    return {"Authorization": f"Bearer {token}"}
