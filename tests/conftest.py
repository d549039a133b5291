import os

# Credentials for the mocked AWS endpoints; must be set before boto3 is used.
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from expense_tracker.db import dynamo


@pytest.fixture
def tables():
    with mock_aws():
        dynamo.get_resource.cache_clear()
        dynamo.create_tables()
        yield dynamo.get_resource()
    dynamo.get_resource.cache_clear()


@pytest.fixture
def client(tables):
    from expense_tracker.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    def _register(email="alice@gmail.com", name="Alice", password="secret123"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def auth_headers(register_user):
    token = register_user()["token"]
    return {"Authorization": f"Bearer {token}"}
