"""
HTTP transport: one ``requests.Session`` per client, bearer authentication,
retries before a final status is known, and error classification.
"""

from __future__ import annotations

import json
import logging
import mimetypes
import os
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

import requests
from requests.adapters import BaseAdapter

from .errors import ErrorKind, OpenAIError, error_for, error_from_response

USER_AGENT = "oaiclient/1.0"


# =============================================================================
# Retry Policy
# =============================================================================

def exponential_delay(attempt: int, delay_factor: float = 0.1) -> float:
    """Seconds to wait before retry number ``attempt`` (1-based), with jitter."""
    delay = (2 ** attempt) * delay_factor
    return delay + delay * 0.2 * random.random()


def is_retryable_error(error: Optional[Exception], response: Optional[requests.Response]) -> bool:
    """Connection failures and 5xx responses are worth another try; timeouts are not."""
    if response is not None:
        return 500 <= response.status_code <= 599
    return isinstance(error, requests.ConnectionError) and not isinstance(error, requests.Timeout)


@dataclass
class RetryPolicy:
    retries: int = 3
    backoff: Callable[[int], float] = exponential_delay
    retry_condition: Callable[[Optional[Exception], Optional[requests.Response]], bool] = is_retryable_error


# =============================================================================
# Multipart Helpers
# =============================================================================

FilePart = Tuple[str, bytes, str]


def file_part(file_info: Any, name: str = "file") -> FilePart:
    """
    Normalize a file argument into ``(filename, data, content_type)``.

    Accepts a path, raw bytes, a ``(filename, data[, content_type])`` tuple or
    a readable file object. Content is read into memory so a retried request
    sends the same body.
    """
    if isinstance(file_info, tuple):
        filename, file_data = file_info[0], file_info[1]
        content_type = file_info[2] if len(file_info) > 2 else "application/octet-stream"
    elif isinstance(file_info, (bytes, bytearray)):
        filename = name
        file_data = bytes(file_info)
        content_type = "application/octet-stream"
    elif isinstance(file_info, (str, os.PathLike)):
        filename = os.path.basename(os.fspath(file_info))
        with open(file_info, "rb") as f:
            file_data = f.read()
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    else:
        filename = getattr(file_info, "name", name)
        if isinstance(filename, str):
            filename = os.path.basename(filename)
        else:
            filename = name
        file_data = file_info.read()
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

    if isinstance(file_data, str):
        file_data = file_data.encode("utf-8")
    return filename, file_data, content_type


def form_fields(fields: Dict[str, Any]) -> Dict[str, str]:
    """Stringify multipart text fields, dropping ``None`` values."""
    return {key: str(value) for key, value in fields.items() if value is not None}


# =============================================================================
# HTTP Transport
# =============================================================================

class HTTPTransport:
    """Low-level HTTP transport using requests."""

    def __init__(
        self,
        base_url: str,
        api_key: str = None,
        timeout: Optional[float] = None,
        proxy: Union[str, Dict[str, str], None] = None,
        http_adapter: Optional[BaseAdapter] = None,
        default_headers: dict = None,
        verify_ssl: bool = True,
        retry: RetryPolicy = None,
        logger: logging.Logger = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        # 0 means "no timeout"
        self.timeout = timeout or None
        self.default_headers = default_headers or {}
        self.retry = retry or RetryPolicy()
        self.logger = logger or logging.getLogger(__name__)

        self.session = requests.Session()
        self.session.verify = verify_ssl
        if isinstance(proxy, str):
            self.session.proxies.update({"http": proxy, "https": proxy})
        elif proxy:
            self.session.proxies.update(proxy)
        if http_adapter is not None:
            self.session.mount("https://", http_adapter)
            self.session.mount("http://", http_adapter)

    def _build_headers(self, extra_headers: dict = None, content_type: Optional[str] = "application/json") -> dict:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        if content_type:
            headers["Content-Type"] = content_type
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        headers.update(self.default_headers)
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _error_from(self, response: requests.Response) -> OpenAIError:
        try:
            data = response.json()
        except ValueError:
            data = response.text or None
        finally:
            response.close()
        return error_from_response(
            response.status_code,
            data,
            fallback_message=f"Request failed with status code {response.status_code}",
        )

    def _send(
        self,
        method: str,
        path: str,
        body: Any = None,
        files: dict = None,
        data: dict = None,
        headers: dict = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send with retries and return a 2xx response, or raise one classified error."""
        url = f"{self.base_url}{path}"
        content_type = None if files else ("application/json" if body is not None else None)
        req_headers = self._build_headers(headers, content_type=content_type)

        response = None
        last_error = None
        for attempt in range(self.retry.retries + 1):
            response = None
            last_error = None
            try:
                response = self.session.request(
                    method.upper(),
                    url,
                    json=body,
                    data=data,
                    files=files,
                    headers=req_headers,
                    timeout=self.timeout,
                    stream=stream,
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
            except requests.RequestException as e:
                raise error_for(ErrorKind.GENERIC, f"Error: {e}") from e

            if response is not None and 200 <= response.status_code < 300:
                return response

            if attempt < self.retry.retries and self.retry.retry_condition(last_error, response):
                wait = self.retry.backoff(attempt + 1)
                self.logger.warning(
                    "Retrying %s %s in %.2fs (attempt %d/%d)",
                    method.upper(), path, wait, attempt + 1, self.retry.retries,
                )
                if response is not None:
                    response.close()
                time.sleep(wait)
                continue
            break

        if response is None:
            raise error_for(ErrorKind.NETWORK, f"Network error: {last_error}") from last_error
        raise self._error_from(response)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        files: dict = None,
        data: dict = None,
        headers: dict = None,
    ) -> Any:
        """Make a buffered request and return the decoded JSON body."""
        self.logger.info("Request: %s %s", method.upper(), path)
        if body is not None:
            self.logger.debug("Payload: %s", json.dumps(body, default=str))
        elif data:
            self.logger.debug("Payload: %s", json.dumps(data, default=str))

        response = self._send(method, path, body=body, files=files, data=data, headers=headers)
        try:
            try:
                result = response.json()
            except ValueError:
                result = {"text": response.text}
        finally:
            response.close()

        self.logger.debug("Response: %s", json.dumps(result, default=str))
        return result

    def request_raw(self, method: str, path: str, headers: dict = None) -> bytes:
        """Make a buffered request and return the raw body."""
        self.logger.info("Request: %s %s", method.upper(), path)
        response = self._send(method, path, headers=headers)
        try:
            content = response.content
        finally:
            response.close()
        self.logger.debug("Response: %d bytes", len(content))
        return content

    def stream(self, method: str, path: str, body: Any = None, headers: dict = None) -> requests.Response:
        """
        Open a streaming request.

        Returns once the headers of a 2xx response are in; the caller owns the
        response and must close it.
        """
        self.logger.info("Request: %s %s (stream)", method.upper(), path)
        if body is not None:
            self.logger.debug("Payload: %s", json.dumps(body, default=str))
        return self._send(method, path, body=body, headers=headers, stream=True)

    def iter_bytes(self, response: requests.Response) -> Iterator[bytes]:
        """Yield body bytes as they arrive; transport failures become ``NetworkError``."""
        try:
            for chunk in response.iter_content(chunk_size=None):
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            raise error_for(ErrorKind.NETWORK, f"Network error: {e}") from e

    def close(self):
        self.session.close()
