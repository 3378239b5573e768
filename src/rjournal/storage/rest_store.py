from __future__ import annotations

import json
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Mapping

from rjournal.config.app_config import StoreSettings
from rjournal.models import Trade
from rjournal.storage.json_file import LoadResult, load_trades_payload

DEFAULT_TABLE = "trades"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 0.75

# Postgres "undefined_table" and the PostgREST schema-cache miss.
MISSING_TABLE_CODES = {"42P01", "PGRST205"}


class StoreError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class SchemaMissingError(StoreError):
    pass


class StoreNotConfiguredError(StoreError):
    pass


@dataclass(frozen=True)
class RestStoreConfig:
    base_url: str
    api_key: str
    table: str = DEFAULT_TABLE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    @classmethod
    def from_env(cls, env: Mapping[str, str], settings: StoreSettings | None = None) -> "RestStoreConfig":
        base_url = (
            env.get("JOURNAL_STORE_URL", "").strip()
            or env.get("SUPABASE_URL", "").strip()
            or (settings.base_url if settings else "")
        )
        api_key = env.get("JOURNAL_STORE_KEY", "").strip() or env.get("SUPABASE_ANON_KEY", "").strip()
        debug_env = env.get("JOURNAL_STORE_DEBUG", "").lower() in {"1", "true", "yes"}
        if settings is None:
            return cls(base_url=base_url.rstrip("/"), api_key=api_key, debug=debug_env)
        return cls(
            base_url=base_url.rstrip("/"),
            api_key=api_key,
            table=settings.table,
            timeout_seconds=settings.timeout_seconds,
            retry_attempts=settings.retry_attempts,
            retry_backoff_seconds=settings.retry_backoff_seconds,
            debug=settings.debug or debug_env,
        )


class TradeStore:
    """Client for the remote trades table behind a PostgREST endpoint."""

    def __init__(self, config: RestStoreConfig) -> None:
        self._config = config

    @property
    def config(self) -> RestStoreConfig:
        return self._config

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def fetch_all(self) -> LoadResult:
        payload = self._request(
            "GET",
            params={"select": "*", "order": "date.desc,time.desc"},
        )
        return load_trades_payload(payload or [])

    def upsert(self, trade: Trade) -> Trade:
        record = trade.to_record()
        if record.get("r_multiple") is None:
            # The column is NOT NULL; a blank R is stored as zero.
            record["r_multiple"] = 0
        # A POST without an id inserts; only updates are safe to replay.
        payload = self._request(
            "POST",
            body=record,
            prefer="resolution=merge-duplicates,return=representation",
            retry=trade.id is not None,
        )
        rows = payload if isinstance(payload, list) else [payload]
        if not rows or not isinstance(rows[0], Mapping):
            raise StoreError("Upsert returned no representation.")
        return Trade.from_record(rows[0])

    def delete(self, trade_id: str) -> bool:
        if not trade_id:
            raise ValueError("Trade id is required for delete.")
        self._request("DELETE", params={"id": f"eq.{trade_id}"})
        return True

    def _request(
        self,
        method: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Any = None,
        prefer: str | None = None,
        retry: bool = True,
    ) -> Any:
        if not self.is_configured:
            raise StoreNotConfiguredError("Store credentials are not configured.")
        url = f"{self._config.base_url}/rest/v1/{urllib.parse.quote(self._config.table)}"
        query = urllib.parse.urlencode(list((params or {}).items()))
        if query:
            url = f"{url}?{query}"

        headers = {
            "apikey": self._config.api_key,
            "Authorization": f"Bearer {self._config.api_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        data_bytes = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data_bytes = json.dumps(body).encode("utf-8")

        if self._config.debug:
            print(f"store debug: {method} {url} body={body!r}")

        return _send_with_retry(
            url=url,
            method=method,
            headers=headers,
            data_bytes=data_bytes,
            timeout_seconds=self._config.timeout_seconds,
            attempts=self._config.retry_attempts if retry else 1,
            backoff_seconds=self._config.retry_backoff_seconds,
        )


def _send_request(
    url: str,
    method: str,
    headers: Mapping[str, str],
    data_bytes: bytes | None,
    timeout_seconds: float,
) -> Any:
    request = urllib.request.Request(url, headers=dict(headers), data=data_bytes, method=method)
    try:
        with urllib.request.urlopen(request, timeout=timeout_seconds) as response:
            status = response.status
            content_type = response.headers.get("Content-Type", "")
            payload = response.read()
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8") if exc.fp else ""
        raise _error_from_response(exc.code, body) from exc
    except urllib.error.URLError as exc:
        raise StoreError(f"Request failed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise StoreError(f"Request timed out: {exc}") from exc

    if not payload:
        return None

    try:
        return json.loads(payload.decode("utf-8"))
    except json.JSONDecodeError as exc:
        snippet = payload[:500].decode("utf-8", errors="replace")
        raise StoreError(
            f"Non-JSON response (content-type {content_type}, url {url}): {snippet}",
            status=status,
        ) from exc


def _send_with_retry(
    url: str,
    method: str,
    headers: Mapping[str, str],
    data_bytes: bytes | None,
    timeout_seconds: float,
    attempts: int,
    backoff_seconds: float,
) -> Any:
    last_error: Exception | None = None
    for attempt in range(max(1, attempts)):
        try:
            return _send_request(
                url=url,
                method=method,
                headers=headers,
                data_bytes=data_bytes,
                timeout_seconds=timeout_seconds,
            )
        except StoreError as exc:
            last_error = exc
            if not _should_retry(exc, attempt, attempts):
                raise
            time.sleep(backoff_seconds * (2**attempt))
    if last_error is not None:
        raise last_error
    raise StoreError("Request retry loop exited without sending.")


def _error_from_response(status: int, body: str) -> StoreError:
    code: str | None = None
    message = body.strip() or f"HTTP {status}"
    try:
        parsed = json.loads(body) if body else None
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, Mapping):
        code = str(parsed["code"]) if parsed.get("code") is not None else None
        message = str(parsed.get("message") or message)
    if code in MISSING_TABLE_CODES or "does not exist" in message.lower():
        return SchemaMissingError(message, status=status, code=code)
    return StoreError(f"HTTP {status}: {message}", status=status, code=code)


def _should_retry(exc: Exception, attempt: int, attempts: int) -> bool:
    if attempt >= attempts - 1:
        return False
    if isinstance(exc, (SchemaMissingError, StoreNotConfiguredError)):
        return False
    if not isinstance(exc, StoreError):
        return False
    if exc.status is None:
        return "timed out" in exc.message.lower() or "temporary failure" in exc.message.lower()
    return exc.status in {408, 429} or exc.status >= 500
