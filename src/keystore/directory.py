from __future__ import annotations
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging
import httpx
from tenacity import retry, stop_after_attempt, wait_exponential_jitter, retry_if_exception
from .base import UserKeyStore, PublicKeyRecord, KeyStoreError, KeyStoreRetryable, KeyStoreTimeout

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}

def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.ConnectTimeout, httpx.ConnectError, httpx.RemoteProtocolError)):
        return True
    return isinstance(exc, KeyStoreRetryable)

class DirectoryKeyStore(UserKeyStore):
    """Looks public keys up on the user service over HTTP: GET {base_url}/users/{identity}."""

    def __init__(
        self,
        base_url: str,
        request_timeout_s: float = 5.0,
        lookup_path: str = "/users/{identity}",
        key_field: str = "publicKey",
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.request_timeout_s = request_timeout_s
        self.lookup_path = lookup_path
        self.key_field = key_field
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=request_timeout_s,
            headers=headers,
            transport=transport,
        )

    def _extract_key(self, body: Any) -> Optional[str]:
        #user service may wrap the record, e.g. {"user": {...}}
        if isinstance(body, dict) and self.key_field not in body and isinstance(body.get("user"), dict):
            body = body["user"]
        if not isinstance(body, dict):
            raise KeyStoreError(f"Unexpected user record shape from {self.base_url}: {type(body).__name__}")
        value = body.get(self.key_field)
        if value is not None and not isinstance(value, str):
            raise KeyStoreError(f"User record field '{self.key_field}' is not a string")
        return value

    @retry(reraise=True, wait=wait_exponential_jitter(initial=0.1, max=1), stop=stop_after_attempt(3), retry=retry_if_exception(_is_retryable))
    async def _fetch(self, identity: str) -> httpx.Response:
        path = self.lookup_path.format(identity=quote(identity, safe=""))
        response = await self.client.get(path)
        if response.status_code in RETRYABLE_STATUS:
            raise KeyStoreRetryable(f"User service returned {response.status_code}")
        return response

    async def lookup_public_key(self, identity: str) -> Optional[PublicKeyRecord]:
        try:
            response = await self._fetch(identity)
        except httpx.TimeoutException as e:
            raise KeyStoreTimeout(f"User lookup timed out after {self.request_timeout_s}s: {e}") from e
        except httpx.HTTPError as e:
            raise KeyStoreError(f"User lookup failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise KeyStoreError(f"User service returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise KeyStoreError(f"User service returned invalid JSON: {e}") from e

        return PublicKeyRecord(identity=identity, public_key_pem=self._extract_key(body))

    async def health_check(self) -> bool:
        try:
            response = await self.client.get("/health")
            return response.status_code < 500
        except httpx.HTTPError:
            return False

    async def aclose(self) -> None:
        await self.client.aclose()
        logger.info(f"closed user directory client for {self.base_url}")
