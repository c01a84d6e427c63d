"""Shared fixtures for integration tests against a real DynamoDB table.

All integration tests are skipped unless the required environment variables
are set. This allows the test suite to run in CI without credentials while
supporting local testing against DynamoDB Local or a real table.

Required env vars:
    DYNAMODB_TEST_TABLE     — table with partition key session_id (S)

Optional env vars:
    DYNAMODB_ENDPOINT       — e.g., http://localhost:8000 for DynamoDB Local
    AWS_REGION              — defaults to ap-southeast-1
"""

from __future__ import annotations

import os

import pytest

from aiguide.sessions import SessionConfig, SessionStore
from aiguide.store import DynamoDBDocumentStore

pytestmark = pytest.mark.integration


@pytest.fixture(scope="session")
def dynamodb_env():
    """Return DynamoDB env vars or skip."""
    table = os.environ.get("DYNAMODB_TEST_TABLE")
    if not table:
        pytest.skip("Integration tests require DYNAMODB_TEST_TABLE")
    return {
        "table_name": table,
        "endpoint_url": os.environ.get("DYNAMODB_ENDPOINT", ""),
        "region_name": os.environ.get("AWS_REGION", "ap-southeast-1"),
    }


@pytest.fixture
def real_store(dynamodb_env) -> DynamoDBDocumentStore:
    return DynamoDBDocumentStore(timeout=5.0, **dynamodb_env)


@pytest.fixture
def real_sessions(real_store) -> SessionStore:
    """SessionStore with a 2s idle limit so expiry can be observed quickly."""
    return SessionStore(
        real_store,
        SessionConfig(idle_ms=2000, secret="integration-test-secret", store_timeout=10.0),
    )
