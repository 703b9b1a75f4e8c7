"""
Test configuration and fixtures for the Forsee AI gateway.

This module provides common test fixtures and configuration for both unit and integration tests.
"""
import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

TEST_JWT_SECRET = "test-signing-secret"


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    # Gemini is the only configured provider unless a test says otherwise
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "MISTRAL_API_KEY", "DEEPSEEK_API_KEY", "LLM_PROVIDER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "dummy_key_for_tests")
    monkeypatch.setenv("FIREBASE_API_KEY", "dummy_firebase_key_for_tests")
    monkeypatch.delenv("FIREBASE_PROJECT_ID", raising=False)

    # Symmetric signing keeps token tests free of key files
    monkeypatch.setenv("JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("JWT_PUBLIC_KEY", TEST_JWT_SECRET)
    monkeypatch.setenv("ASSETS_API_URL", "http://assets.test/api/v1")


@pytest.fixture
def make_token():
    """Create a signed token with the given claims."""
    def _make_token(**claims):
        return jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")
    return _make_token


@pytest.fixture
def recorded_client():
    """
    Build an httpx.AsyncClient whose requests are recorded and answered by a handler.

    Returns (client, requests) where requests collects every httpx.Request sent.
    """
    def _build(handler):
        requests = []

        def _handle(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(_handle)), requests
    return _build


@pytest.fixture(scope="session")
def signing_key_pairs():
    """
    Two RSA key pairs, 'k1' and 'k2', as the identity provider would rotate them.

    Each entry holds the private PEM, the public PEM and the public JWK (with its kid).
    """
    pairs = {}
    for kid in ("k1", "k2"):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode()
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode()
        pairs[kid] = {
            "private_pem": private_pem,
            "public_pem": public_pem,
            "jwk": {**jwk.construct(public_pem, "RS256").to_dict(), "kid": kid},
        }
    return pairs
