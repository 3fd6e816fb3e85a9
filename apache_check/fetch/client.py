from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

import anyio
import httpx

from apache_check import __version__
from apache_check.utils.errors import FetchError, FetchTimeout


USER_AGENT = f"apache-check/{__version__}"
STATUS_QUERY = "auto"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchRequest:
    url: str
    username: str | None = None
    password: str | None = None
    prefer_ipv6: bool = False
    address: str | None = None
    verify_tls: bool = True
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class FetchTarget:
    url: str
    host_header: str | None = None


def with_status_query(url: str) -> str:
    parts = urlsplit(url)
    if parts.query:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, STATUS_QUERY, parts.fragment))


def _bracket(host: str) -> str:
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def resolve_target(url: str, address: str | None = None) -> FetchTarget:
    """Point ``url`` at ``address`` while keeping its host as the Host header."""
    if not address:
        return FetchTarget(url=url)
    parts = urlsplit(url)
    port = f":{parts.port}" if parts.port is not None else ""
    original_host = _bracket(parts.hostname or "")
    netloc = f"{_bracket(address)}{port}"
    return FetchTarget(
        url=urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment)),
        host_header=f"{original_host}{port}",
    )


def _build_transport(request: FetchRequest) -> httpx.AsyncBaseTransport:
    return httpx.AsyncHTTPTransport(
        verify=request.verify_tls,
        local_address="::" if request.prefer_ipv6 else None,
    )


async def _fetch(
    request: FetchRequest, transport: httpx.AsyncBaseTransport | None
) -> str:
    target = resolve_target(request.url, request.address)
    headers = {"User-Agent": USER_AGENT}
    extensions: dict[str, str] = {}
    if target.host_header:
        headers["Host"] = target.host_header
        if target.url.startswith("https:"):
            extensions["sni_hostname"] = urlsplit(request.url).hostname or ""
    auth = (request.username, request.password or "") if request.username else None

    async with httpx.AsyncClient(
        transport=transport or _build_transport(request),
        timeout=httpx.Timeout(request.timeout_seconds),
        auth=auth,
    ) as client:
        async with client.stream(
            "GET", target.url, headers=headers, extensions=extensions
        ) as response:
            if not response.is_success:
                raise FetchError(
                    f"HTTP {response.status_code} {response.reason_phrase}".strip()
                )
            chunks = [chunk async for chunk in response.aiter_bytes()]
            encoding = response.encoding or "utf-8"
    return b"".join(chunks).decode(encoding, errors="replace")


async def _fetch_before_deadline(
    request: FetchRequest, transport: httpx.AsyncBaseTransport | None
) -> str:
    # One deadline for connect, headers and body; expiry cancels the request.
    with anyio.fail_after(request.timeout_seconds):
        return await _fetch(request, transport)


def fetch_status(
    request: FetchRequest,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    message = f"request timeout after {request.timeout_seconds:g}s"
    try:
        return anyio.run(_fetch_before_deadline, request, transport)
    except httpx.TimeoutException as exc:
        logger.warning("fetch_timeout", extra={"phase": exc.__class__.__name__})
        raise FetchTimeout(message) from exc
    except TimeoutError as exc:
        logger.warning("fetch_timeout", extra={"phase": "deadline"})
        raise FetchTimeout(message) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("fetch_failed", extra={"detail": str(exc)})
        raise FetchError(str(exc) or exc.__class__.__name__) from exc
