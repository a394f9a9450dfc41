from __future__ import annotations

import logging
import time
from http.cookiejar import DefaultCookiePolicy
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import requests
from requests import exceptions as req_exc

from .errors import FetchError

log = logging.getLogger(__name__)

TRANSIENT_HTTP_STATUSES = {429, 500, 502, 503, 504}

USER_AGENT = (
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:90.0) "
    "Gecko/20100101 Firefox/90.0"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate",
    "Accept-Language": "sv,en",
    "Connection": "keep-alive",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

STREAM_CHUNK_SIZE = 10240


def _retry_after_seconds(headers: dict[str, str]) -> float | None:
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        return None


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    # Cookies travel only through an explicit Session value; the jar stays empty.
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return session


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    headers: dict[str, str]
    fetched_at: float
    body: bytes
    cookies: tuple[str, ...] = ()
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def media_type(self) -> str:
        return media_type_of(self.headers)

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def media_type_of(headers: dict[str, str]) -> str:
    content_type = next(
        (v for k, v in headers.items() if k.lower() == "content-type"), ""
    )
    return content_type.split(";", 1)[0].strip().lower()


def _set_cookie_headers(resp: requests.Response) -> tuple[str, ...]:
    # requests folds repeated Set-Cookie headers; the raw urllib3 headers
    # keep them apart.
    raw = getattr(resp, "raw", None)
    raw_headers = getattr(raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        return tuple(str(v) for v in raw_headers.getlist("Set-Cookie"))
    value = resp.headers.get("Set-Cookie")
    return (str(value),) if value else ()


class HttpClient:
    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: int = 45,
        max_retries: int = 4,
        backoff_base_s: float = 1.0,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s

    def _send(
        self,
        url: str,
        *,
        headers: dict[str, str] | None,
        stream: bool,
    ) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                log.debug("GET %s (attempt %d)", url, attempt + 1)
                resp = self._session.get(
                    url, timeout=self._timeout_s, headers=headers, stream=stream
                )

                if (
                    resp.status_code in TRANSIENT_HTTP_STATUSES
                    and attempt < self._max_retries
                ):
                    retry_after = _retry_after_seconds(dict(resp.headers))
                    wait_s = (
                        retry_after
                        if retry_after is not None
                        else self._backoff_base_s * (2**attempt)
                    )
                    log.debug(
                        "GET %s -> %d, retrying in %.1fs",
                        url,
                        resp.status_code,
                        wait_s,
                    )
                    resp.close()
                    time.sleep(wait_s)
                    continue

                return resp
            except req_exc.RequestException as e:
                last_error = e
                if attempt >= self._max_retries:
                    break
                time.sleep(self._backoff_base_s * (2**attempt))

        raise FetchError(url, last_error)

    def get(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        resp = self._send(url, headers=headers, stream=False)
        # Callers decide what a non-2xx status means.
        return FetchResult(
            url=url,
            final_url=str(resp.url),
            status_code=int(resp.status_code),
            headers={k: str(v) for k, v in resp.headers.items()},
            fetched_at=time.time(),
            body=resp.content,
            cookies=_set_cookie_headers(resp),
            reason=str(resp.reason or ""),
        )

    @contextmanager
    def stream(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> Iterator[StreamedResponse]:
        resp = self._send(url, headers=headers, stream=True)
        try:
            yield StreamedResponse(
                url=url,
                status_code=int(resp.status_code),
                headers={k: str(v) for k, v in resp.headers.items()},
                _response=resp,
            )
        finally:
            resp.close()


@dataclass
class StreamedResponse:
    url: str
    status_code: int
    headers: dict[str, str]
    _response: requests.Response

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def media_type(self) -> str:
        return media_type_of(self.headers)

    def iter_chunks(self, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
        for chunk in self._response.iter_content(chunk_size=chunk_size):
            if chunk:
                yield chunk
