import pytest

from fastapi.testclient import TestClient

from order_service.database import OrderDB
from order_service.main import create_app
from order_service.service import OrderService

from fakes import FakePayments, FakePublisher, StepClock, create_access_token


@pytest.fixture
def repo(tmp_path):
    return OrderDB(str(tmp_path / "orders.db"))


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def service(repo, payments, publisher):
    return OrderService(repo, payments=payments, publisher=publisher, clock=StepClock())


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def auth_headers():
    token = create_access_token({"user_id": "customer-1", "roles": ["user"]})
    return {"Authorization": f"Bearer {token}"}
