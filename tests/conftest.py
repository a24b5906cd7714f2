# tests/conftest.py
"""Global PyTest fixtures for the medoro test suite.

No test touches the network: HTTP exchanges go through httpx.MockTransport.
"""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from medoro import MedoroDataplaneClient, ValidationPolicy
from tests.helpers import make_client, make_policy


@pytest.fixture
def private_key() -> Ed25519PrivateKey:
    """Fresh Ed25519 key per test."""
    return Ed25519PrivateKey.generate()


@pytest.fixture
def policy() -> ValidationPolicy:
    return make_policy()


@pytest.fixture
def signing_client(private_key: Ed25519PrivateKey) -> MedoroDataplaneClient:
    """Client without a transport: enough for create_signed_url."""
    return make_client(private_key)
