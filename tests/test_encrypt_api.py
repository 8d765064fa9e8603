"""
Tests for the public-key encryption API endpoint.

Tests the FastAPI endpoint including:
- Bearer token authentication
- Success path and ciphertext format
- Error mapping to status codes and the APIError body
"""

import re
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock, AsyncMock
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from src.api.main import create_app
from src.api.settings import ServiceSettings, AuthSettings, EncryptionSettings, load_settings
from src.api.dependencies.auth import create_access_token
from src.api.dependencies.keystore import get_key_store_manager
from src.keystore.base import UserKeyStore, KeyStoreTimeout
from src.keystore.manager import KeyStoreManager
from src.keystore.memory import InMemoryKeyStore
from src.pipeline.encryption.oaep import oaep_padding

ENDPOINT = "/api/v1/crypto/public-encrypt"
IDENTITY = "+61400000000"
HEX_RE = re.compile(r"^[0-9a-f]+$")


def _public_pem(private_key) -> str:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def private_key_4096():
    return rsa.generate_private_key(public_exponent=65537, key_size=4096)


@pytest.fixture
def settings():
    return ServiceSettings(auth=AuthSettings(secret_key="test-secret"))


@pytest.fixture
def key_store(private_key, private_key_4096):
    return InMemoryKeyStore({
        IDENTITY: _public_pem(private_key),
        "+big": _public_pem(private_key_4096),
        "+keyless": None,
        "+corrupt": "-----BEGIN PUBLIC KEY-----\nZm9v\n-----END PUBLIC KEY-----\n",
    })


def _client(settings, store) -> TestClient:
    app = create_app(settings)

    manager = Mock(spec=KeyStoreManager)
    manager.store = store
    manager.store_type = "memory"
    manager.health_check = AsyncMock(return_value=True)

    app.dependency_overrides[get_key_store_manager] = lambda: manager
    return TestClient(app)


@pytest.fixture
def client(settings, key_store):
    return _client(settings, key_store)


def _auth(settings, identity=IDENTITY):
    return {"Authorization": f"Bearer {create_access_token(identity, settings)}"}


class TestEncryptSuccess:

    def test_encrypt_returns_hex_ciphertext(self, client, settings, private_key):
        """
        Test: Authenticated encrypt call
        How: POST a payload with a valid bearer token
        Ensures: 200 with a lowercase hex body that decrypts to the payload
        """
        response = client.post(ENDPOINT, json={"payload": "hello world"}, headers=_auth(settings))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert HEX_RE.match(body)
        assert len(body) == 2 * 256
        assert private_key.decrypt(bytes.fromhex(body), oaep_padding()) == b"hello world"

    def test_hello_world_4096(self, client, settings, private_key_4096):
        response = client.post(ENDPOINT, json={"payload": "hello world"}, headers=_auth(settings, "+big"))

        assert response.status_code == 200
        assert len(response.text) == 1024
        assert private_key_4096.decrypt(bytes.fromhex(response.text), oaep_padding()) == b"hello world"

    def test_repeated_requests_differ(self, client, settings, private_key):
        first = client.post(ENDPOINT, json={"payload": "again"}, headers=_auth(settings)).text
        second = client.post(ENDPOINT, json={"payload": "again"}, headers=_auth(settings)).text

        assert first != second
        assert private_key.decrypt(bytes.fromhex(first), oaep_padding()) == b"again"
        assert private_key.decrypt(bytes.fromhex(second), oaep_padding()) == b"again"


class TestEncryptErrors:

    @pytest.mark.parametrize("body", [{"payload": ""}, {"payload": None}, {}])
    def test_missing_payload_is_400_without_lookup(self, settings, body):
        store = Mock(spec=UserKeyStore)
        store.lookup_public_key = AsyncMock(return_value=None)
        client = _client(settings, store)

        response = client.post(ENDPOINT, json=body, headers=_auth(settings))

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "invalid_input"
        assert data["error"]
        assert "timestamp" in data
        assert store.lookup_public_key.await_count == 0

    @pytest.mark.parametrize("kwargs", [
        {"content": b"not json", "headers": {"Content-Type": "application/json"}},
        {"json": {"payload": 42}},
        {"json": ["payload"]},
    ])
    def test_malformed_body_is_400(self, client, settings, kwargs):
        headers = {**_auth(settings), **kwargs.pop("headers", {})}
        response = client.post(ENDPOINT, headers=headers, **kwargs)

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_input"

    @pytest.mark.parametrize("identity", ["+keyless", "+nobody"])
    def test_key_not_found(self, client, settings, identity):
        response = client.post(ENDPOINT, json={"payload": "hi"}, headers=_auth(settings, identity))

        assert response.status_code == 404
        assert response.json()["error_code"] == "key_not_found"

    def test_key_not_found_status_is_configurable(self, key_store):
        settings = ServiceSettings(
            auth=AuthSettings(secret_key="test-secret"),
            encryption=EncryptionSettings(key_not_found_status=409),
        )
        client = _client(settings, key_store)

        response = client.post(ENDPOINT, json={"payload": "hi"}, headers=_auth(settings, "+keyless"))

        assert response.status_code == 409
        assert response.json()["error_code"] == "key_not_found"

    def test_corrupt_key_is_500(self, client, settings):
        response = client.post(ENDPOINT, json={"payload": "hi"}, headers=_auth(settings, "+corrupt"))

        assert response.status_code == 500
        assert response.json()["error_code"] == "invalid_key"

    def test_payload_too_large(self, client, settings):
        response = client.post(ENDPOINT, json={"payload": "x" * 127}, headers=_auth(settings))

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "payload_too_large"
        assert "126" in data["error"]
        assert data["details"] == {"payload_bytes": 127, "max_bytes": 126}

    def test_upstream_unavailable(self, settings):
        store = Mock(spec=UserKeyStore)
        store.lookup_public_key = AsyncMock(side_effect=KeyStoreTimeout("timed out after 5s"))
        client = _client(settings, store)

        response = client.post(ENDPOINT, json={"payload": "hi"}, headers=_auth(settings))

        assert response.status_code == 503
        assert response.json()["error_code"] == "upstream_unavailable"


    def test_unencodable_payload_is_400(self, settings):
        store = Mock(spec=UserKeyStore)
        store.lookup_public_key = AsyncMock(return_value=None)
        client = _client(settings, store)

        response = client.post(
            ENDPOINT,
            content=b'{"payload": "\\ud800"}',
            headers={**_auth(settings), "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_input"
        assert store.lookup_public_key.await_count == 0


class TestAuthentication:

    def test_anonymous_non_json_body_fails_parsing_first(self, client):
        # body parsing precedes dependency resolution, so unparseable JSON wins over auth
        response = client.post(ENDPOINT, content=b"not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_input"

    def test_missing_token(self, client):
        response = client.post(ENDPOINT, json={"payload": "hi"})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_garbage_token(self, client):
        response = client.post(ENDPOINT, json={"payload": "hi"}, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_wrong_secret(self, client):
        token = jwt.encode({"phone": IDENTITY}, "other-secret", algorithm="HS256")
        response = client.post(ENDPOINT, json={"payload": "hi"}, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_expired_token(self, client, settings):
        token = create_access_token(IDENTITY, settings, expires_delta=timedelta(seconds=-30))
        response = client.post(ENDPOINT, json={"payload": "hi"}, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_without_identity_claim(self, client, settings):
        token = jwt.encode({"sub": IDENTITY}, settings.auth.secret_key, algorithm="HS256")
        response = client.post(ENDPOINT, json={"payload": "hi"}, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_auth_runs_before_payload_validation(self, settings):
        store = Mock(spec=UserKeyStore)
        store.lookup_public_key = AsyncMock(return_value=None)
        client = _client(settings, store)

        response = client.post(ENDPOINT, json={"payload": ""})

        assert response.status_code == 401
        assert store.lookup_public_key.await_count == 0


class TestAPIEndpointIntegration:

    def test_root_endpoint_lists_encrypt(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["endpoints"]["public_encrypt"] == ENDPOINT

    def test_health_check(self, client):
        response = client.get("/health/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["dependencies"]["keystore"] == "available (memory)"

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_lifespan_builds_key_store_from_config(self, tmp_path, private_key, monkeypatch):
        """
        Test: Full app startup from a config file
        How: Seed a user from a PEM file next to the config and run the app lifespan
        Ensures: The configured key store serves the encrypt endpoint end to end
        """
        monkeypatch.delenv("PUBENC_JWT_SECRET", raising=False)
        (tmp_path / "alice.pem").write_text(_public_pem(private_key))
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"""
auth:
  secret_key: "lifespan-secret"
keystore:
  type: memory
  users:
    "{IDENTITY}":
      public_key_file: alice.pem
""")
        settings = load_settings(config_file)

        with TestClient(create_app(settings)) as client:
            response = client.post(ENDPOINT, json={"payload": "from config"}, headers=_auth(settings))

        assert response.status_code == 200
        assert private_key.decrypt(bytes.fromhex(response.text), oaep_padding()) == b"from config"

    def test_apps_keep_separate_key_stores(self, tmp_path, private_key, monkeypatch):
        """
        Test: Two apps created in one process
        How: Run both lifespans with different configs, then shut one down
        Ensures: Each app keeps its own key store manager
        """
        monkeypatch.delenv("PUBENC_JWT_SECRET", raising=False)
        (tmp_path / "user.pem").write_text(_public_pem(private_key))
        with_key = tmp_path / "with_key.yaml"
        with_key.write_text(f"""
auth:
  secret_key: "app-secret"
keystore:
  users:
    "{IDENTITY}":
      public_key_file: user.pem
""")
        without_key = tmp_path / "without_key.yaml"
        without_key.write_text('auth:\n  secret_key: "app-secret"\nkeystore:\n  users: {}\n')

        first_settings = load_settings(with_key)
        first_app = create_app(first_settings)
        second_app = create_app(load_settings(without_key))

        with TestClient(first_app) as first:
            with TestClient(second_app) as second:
                assert second.post(ENDPOINT, json={"payload": "hi"}, headers=_auth(first_settings)).status_code == 404
            assert first_app.state.keystore_manager is not second_app.state.keystore_manager
            assert second_app.state.keystore_manager is None

            response = first.post(ENDPOINT, json={"payload": "hi"}, headers=_auth(first_settings))
            assert response.status_code == 200

    def test_bad_key_store_config_fails_at_startup(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("keystore:\n  users:\n    alice:\n      public_key_file: missing.pem\n")
        app = create_app(load_settings(config_file))

        with pytest.raises(FileNotFoundError):
            with TestClient(app):
                pass
