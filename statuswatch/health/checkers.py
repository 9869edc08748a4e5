"""Probe implementations for the supported check types.

CheckExecutor is the single dispatch point: one handler per CheckType, each
returning a CheckResult. Handlers never raise; network, timeout and parsing
errors become failed results with a descriptive message.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from statuswatch.health.models import CheckResult
from statuswatch.models.entity import CheckType

logger = logging.getLogger(__name__)

HEALTH_PATH = "/actuator/health"
DEFAULT_TCP_PORT = 80

Handler = Callable[[str, int, int | None], Awaitable[CheckResult]]


def extract_hostname(target: str | None) -> str:
    """Strip scheme, path and port from a check target.

    >>> extract_hostname("https://example.com:8443/status")
    'example.com'
    """
    if not target:
        return ""
    hostname = target.strip()
    for prefix in ("http://", "https://", "tcp://"):
        if hostname.startswith(prefix):
            hostname = hostname[len(prefix) :]
            break
    hostname = hostname.split("/", 1)[0]
    return hostname.split(":", 1)[0]


def health_url(target: str) -> str:
    """Append the health endpoint path unless the target already has it."""
    if HEALTH_PATH in target:
        return target
    if target.endswith("/"):
        return target + HEALTH_PATH.lstrip("/")
    return target + HEALTH_PATH


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class CheckExecutor:
    """Runs a health probe of a given type against a target."""

    def __init__(self) -> None:
        self._handlers: dict[CheckType, Handler] = {
            CheckType.PING: self._ping,
            CheckType.HTTP_GET: self._http_get,
            CheckType.HEALTH_ENDPOINT: self._health_endpoint,
            CheckType.TCP_PORT: self._tcp_port,
        }

    async def run(
        self,
        check_type: CheckType | str | None,
        target: str | None,
        timeout_seconds: int,
        expected_status: int | None = None,
    ) -> CheckResult:
        """Run one probe.

        Args:
            check_type: CheckType or its stored string value
            target: URL, host or host:port depending on the type
            timeout_seconds: Bound for connect and read
            expected_status: Expected HTTP code for HTTP_GET (default 200)

        Returns:
            CheckResult, never raises for probe failures
        """
        if check_type is None or check_type == CheckType.NONE:
            return CheckResult(success=True, message="No check configured")

        try:
            resolved = CheckType(check_type)
        except ValueError:
            return CheckResult(success=False, message=f"Unknown check type: {check_type}")

        handler = self._handlers.get(resolved)
        if handler is None:
            return CheckResult(success=False, message=f"Unknown check type: {resolved.value}")

        return await handler(target or "", timeout_seconds, expected_status)

    async def _ping(
        self, target: str, timeout_seconds: int, expected_status: int | None
    ) -> CheckResult:
        hostname = extract_hostname(target)
        loop = asyncio.get_running_loop()
        start = time.perf_counter()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(hostname, None), timeout=timeout_seconds
            )
            address = infos[0][4][0]
            process = await asyncio.create_subprocess_exec(
                "ping",
                "-c",
                "1",
                "-W",
                str(timeout_seconds),
                address,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            try:
                returncode = await asyncio.wait_for(process.wait(), timeout=timeout_seconds + 1)
            except TimeoutError:
                process.kill()
                await process.wait()
                return CheckResult(success=False, message="Host unreachable")
        except TimeoutError:
            return CheckResult(success=False, message="Host unreachable")
        except (OSError, ValueError) as e:
            # Hostnames that fail IDNA encoding raise UnicodeError
            logger.debug("Ping failed for %s: %s", target, e)
            return CheckResult(success=False, message=f"Ping failed: {e}")

        if returncode == 0:
            return CheckResult(success=True, message=f"Ping successful ({_elapsed_ms(start)}ms)")
        return CheckResult(success=False, message="Host unreachable")

    async def _http_get(
        self, target: str, timeout_seconds: int, expected_status: int | None
    ) -> CheckResult:
        expected = expected_status if expected_status is not None else 200
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=timeout_seconds, follow_redirects=True
            ) as client:
                response = await client.get(target)
        except httpx.TimeoutException:
            return CheckResult(success=False, message="HTTP request failed: request timed out")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("HTTP GET failed for %s: %s", target, e)
            return CheckResult(success=False, message=f"HTTP request failed: {e}")

        elapsed = _elapsed_ms(start)
        code = response.status_code
        if code == expected or (expected == 200 and 200 <= code < 300):
            return CheckResult(success=True, message=f"HTTP {code} ({elapsed}ms)")
        return CheckResult(success=False, message=f"HTTP {code} (expected {expected})")

    async def _health_endpoint(
        self, target: str, timeout_seconds: int, expected_status: int | None
    ) -> CheckResult:
        url = health_url(target)
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
                elapsed = _elapsed_ms(start)
                if not 200 <= response.status_code < 300:
                    return CheckResult(success=False, message=f"HTTP {response.status_code}")
                body = response.json()
        except httpx.TimeoutException:
            return CheckResult(success=False, message="Health check failed: request timed out")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Health endpoint check failed for %s: %s", url, e)
            return CheckResult(success=False, message=f"Health check failed: {e}")
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            return CheckResult(success=False, message=f"Health check failed: invalid JSON ({e})")

        status = body.get("status", "UNKNOWN") if isinstance(body, dict) else "UNKNOWN"
        if str(status).upper() == "UP":
            return CheckResult(success=True, message=f"Health: UP ({elapsed}ms)")
        return CheckResult(success=False, message=f"Health: {status}")

    async def _tcp_port(
        self, target: str, timeout_seconds: int, expected_status: int | None
    ) -> CheckResult:
        host_port = target.strip().removeprefix("tcp://")
        host, _, port_text = host_port.partition(":")
        try:
            port = int(port_text) if port_text else DEFAULT_TCP_PORT
        except ValueError:
            return CheckResult(success=False, message="Invalid port number")
        if not 0 < port < 65536:
            return CheckResult(success=False, message="Invalid port number")

        start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout_seconds
            )
        except TimeoutError:
            return CheckResult(success=False, message="TCP connection failed: connection timed out")
        except (OSError, ValueError) as e:
            logger.debug("TCP check failed for %s: %s", target, e)
            return CheckResult(success=False, message=f"TCP connection failed: {e}")

        elapsed = _elapsed_ms(start)
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return CheckResult(success=True, message=f"TCP connection successful ({elapsed}ms)")
