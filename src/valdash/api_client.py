from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .endpoints import EndpointSpec

RATE_LIMIT_MESSAGE = "Rate limit reached. Please try again in a minute."
NOT_FOUND_MESSAGE = "Player not found. Check the Riot ID format (Name#Tag)."


@dataclass
class ApiConfig:
    base_url: str
    timeout_seconds: int
    max_concurrency: int
    rate_limit_per_sec: int
    retry: Dict[str, Any]
    page_size: int = 10
    mode: str = "competitive"


class RateLimiter:
    def __init__(self, rate_per_sec: int) -> None:
        self.rate_per_sec = rate_per_sec
        self._lock = asyncio.Lock()
        self._tokens = rate_per_sec
        self._last = time.monotonic()

    async def acquire(self) -> None:
        while True:
            async with self._lock:
                now = time.monotonic()
                elapsed = now - self._last
                refill = int(elapsed * self.rate_per_sec)
                if refill > 0:
                    self._tokens = min(self.rate_per_sec, self._tokens + refill)
                    self._last = now
                if self._tokens > 0:
                    self._tokens -= 1
                    return
            # Sleep outside the lock so other coroutines can proceed
            await asyncio.sleep(max(0.01, 1 / self.rate_per_sec))


class ApiClient:
    def __init__(
        self,
        token: str,
        cfg: ApiConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token
        self.cfg = cfg
        self._semaphore = asyncio.Semaphore(cfg.max_concurrency)
        self._limiter = RateLimiter(cfg.rate_limit_per_sec)
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url,
            timeout=cfg.timeout_seconds,
            headers={"Authorization": token, "Accept": "application/json"},
            transport=transport,
        )
        self._logger = None

    def set_logger(self, logger) -> None:
        self._logger = logger

    async def close(self) -> None:
        await self._client.aclose()

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``path`` and return the decoded body.

        Timeouts, transport errors, 429 and 5xx are retried with capped
        exponential backoff. Any other non-200 response whose body is a JSON
        envelope (``{"status": ..., "errors": [...]}``) is returned so the
        caller can read the embedded status; otherwise it raises.
        """
        attempt = 0
        max_attempts = self.cfg.retry.get("max_attempts", 5)
        base_delay = self.cfg.retry.get("base_delay_seconds", 0.5)
        max_delay = self.cfg.retry.get("max_delay_seconds", 8)
        params = params or {}
        while True:
            attempt += 1
            async with self._semaphore:
                await self._limiter.acquire()
                if self._logger:
                    self._logger.info(
                        "http_request_start",
                        extra={"extra": {"path": path, "attempt": attempt, "params": params}},
                    )
                try:
                    resp = await self._client.get(path, params=params)
                except httpx.TimeoutException:
                    if self._logger:
                        self._logger.info("http_timeout", extra={"extra": {"path": path, "attempt": attempt}})
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(min(max_delay, base_delay * (2 ** (attempt - 1))))
                    continue
                except httpx.RequestError as exc:
                    if self._logger:
                        self._logger.info("http_error", extra={"extra": {"path": path, "attempt": attempt, "error": str(exc)}})
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(min(max_delay, base_delay * (2 ** (attempt - 1))))
                    continue
            if resp.status_code == 200:
                return resp.json()
            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt >= max_attempts:
                    resp.raise_for_status()
                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    delay = min(max_delay, float(retry_after))
                else:
                    delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
                if self._logger:
                    self._logger.info(
                        "http_retry",
                        extra={
                            "extra": {
                                "path": path,
                                "status": resp.status_code,
                                "attempt": attempt,
                                "delay": delay,
                            }
                        },
                    )
                await asyncio.sleep(delay)
                continue
            body = _json_or_none(resp)
            if isinstance(body, dict) and "status" in body:
                return body
            resp.raise_for_status()
            return body


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


@dataclass
class ProviderResult:
    data: Any = None
    error: Optional[str] = None
    status: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None


def envelope_error(
    payload: Any,
    default_message: str = "API Error",
    not_found_message: str = NOT_FOUND_MESSAGE,
) -> Optional[str]:
    """Return a display message when the body's embedded status is not 200."""
    if not isinstance(payload, dict):
        return default_message
    status = payload.get("status", 200)
    if status == 200:
        return None
    if status == 429:
        return RATE_LIMIT_MESSAGE
    if status == 404:
        return not_found_message
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict) and errors[0].get("message"):
        return str(errors[0]["message"])
    return f"{default_message}: {status}"


class ProviderClient:
    """Read-only access to the account, MMR and match-history endpoints.

    Every method returns a :class:`ProviderResult`; upstream failures of any
    kind become ``ProviderResult(error=...)`` rather than exceptions.
    """

    def __init__(
        self,
        api: ApiClient,
        registry: Dict[str, EndpointSpec],
        platform: str = "pc",
        logger=None,
    ) -> None:
        self.api = api
        self.registry = registry
        self.platform = platform
        self.logger = logger
        if logger is not None:
            api.set_logger(logger)

    async def close(self) -> None:
        await self.api.close()

    async def _call(
        self,
        endpoint: str,
        path_params: Dict[str, Any],
        query: Optional[Dict[str, Any]] = None,
        default_message: str = "API Error",
        not_found_message: str = NOT_FOUND_MESSAGE,
    ) -> ProviderResult:
        path = self.registry[endpoint].render(**path_params)
        try:
            payload = await self.api.get_json(path, params=query)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = RATE_LIMIT_MESSAGE if status == 429 else f"{default_message}: {status}"
            self._log("provider_error", endpoint=endpoint, status=status)
            return ProviderResult(error=message, status=status)
        except httpx.HTTPError as exc:
            self._log("provider_unavailable", endpoint=endpoint, error=str(exc))
            return ProviderResult(error=f"{default_message}: upstream unavailable", status=503)
        except ValueError:
            self._log("provider_bad_json", endpoint=endpoint)
            return ProviderResult(error=default_message, status=502)
        error = envelope_error(payload, default_message, not_found_message)
        status = payload.get("status", 200) if isinstance(payload, dict) else 502
        if error is not None:
            self._log("provider_no_data", endpoint=endpoint, status=status, error=error)
            return ProviderResult(error=error, status=status)
        return ProviderResult(data=payload.get("data"), status=200)

    def _log(self, msg: str, **extra: Any) -> None:
        if self.logger:
            self.logger.info(msg, extra={"extra": extra})

    async def get_account(self, name: str, tag: str) -> ProviderResult:
        return await self._call("account", {"name": name, "tag": tag})

    async def get_mmr(self, region: str, name: str, tag: str) -> ProviderResult:
        return await self._call(
            "mmr",
            {"region": region, "platform": self.platform, "name": name, "tag": tag},
        )

    async def get_matches(
        self,
        region: str,
        name: str,
        tag: str,
        start: int = 0,
        size: Optional[int] = None,
    ) -> ProviderResult:
        query = {
            "mode": self.api.cfg.mode,
            "size": size or self.api.cfg.page_size,
            "start": start,
        }
        result = await self._call(
            "matches",
            {"region": region, "platform": self.platform, "name": name, "tag": tag},
            query=query,
        )
        if result.ok and not isinstance(result.data, list):
            result.data = []
        return result

    async def get_match(self, region: str, match_id: str) -> ProviderResult:
        result = await self._call(
            "match",
            {"region": region, "match_id": match_id},
            default_message="Match not found",
            not_found_message="Match not found",
        )
        if result.ok:
            data = result.data
            if isinstance(data, list):
                data = data[0] if data else None
            if not isinstance(data, dict):
                return ProviderResult(error="Match not found", status=404)
            result.data = data
        return result


def match_list(result: ProviderResult) -> List[Any]:
    return result.data if result.ok and isinstance(result.data, list) else []
