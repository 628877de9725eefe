"""REST key/value backend (Upstash / Vercel KV compatible)."""

import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from .backend import KeyValueBackend
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class RestKeyValueBackend(KeyValueBackend):
    """
    Key/value backend speaking the Redis-over-REST protocol.

    GET  {base_url}/get/{key}  -> {"result": "<json string>" | null}
    POST {base_url}/set/{key}  (body = json string) -> {"result": "OK"}
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 5.0
    ):
        """
        Initialize REST backend.

        Args:
            base_url: Base URL of the KV REST API
            token: Bearer token for the API
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, command: str, key: str) -> str:
        return f"{self.base_url}/{command}/{quote(key, safe='')}"

    def _result(self, response: requests.Response, key: str) -> Any:
        if response.status_code != 200:
            raise PersistenceFailure(
                f"KV API returned {response.status_code} for {key}"
            )
        try:
            body = response.json()
        except ValueError as e:
            raise PersistenceFailure(f"KV API returned invalid JSON for {key}") from e
        if "error" in body:
            raise PersistenceFailure(f"KV API error for {key}: {body['error']}")
        return body.get("result")

    def get(self, key: str) -> Optional[Any]:
        try:
            response = self.session.get(self._url("get", key), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PersistenceFailure(f"KV read failed for {key}: {e}") from e

        result = self._result(response, key)
        if result is None:
            return None

        try:
            return json.loads(result)
        except (TypeError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Corrupt value stored under {key}") from e

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        try:
            response = self.session.post(
                self._url("set", key),
                data=payload.encode("utf-8"),
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise PersistenceFailure(f"KV write failed for {key}: {e}") from e

        self._result(response, key)

    def describe(self) -> str:
        return f"rest:{self.base_url}"
