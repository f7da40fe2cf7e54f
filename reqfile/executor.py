"""reqfile executor - HTTP request execution."""

import json
import logging
import time
from typing import Any

import requests

logger = logging.getLogger(__name__)


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.headers: dict[str, str] = {}
        self.body: Any = None  # parsed JSON or raw text
        self.elapsed_ms: float = 0
        self.error: str | None = None
        self.raw_text: str = ""


def new_session() -> requests.Session:
    """Session whose cookie jar is shared by every request of one run."""
    return requests.Session()


def execute_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: str | bytes | None = None,
    form_data: dict | None = None,
    timeout: float = 30,
    allow_redirects: bool = True,
    use_cookie_jar: bool = True,
    session: requests.Session | None = None,
) -> RequestResult:
    """Execute an HTTP request and return structured result.

    - Attempts to parse response as JSON, falls back to raw text
    - Captures timing
    - form_data ({"data": ..., "files": ...}) is sent as multipart instead of body
    - Goes through `session` (and its cookies) unless use_cookie_jar is False
    - Never raises - always returns RequestResult with error field set
    """
    result = RequestResult()

    if isinstance(body, str):
        body = body.encode("utf-8")

    try:
        kwargs: dict[str, Any] = {
            "method": method.upper(),
            "url": url,
            "headers": headers,
            "data": body or None,
            "timeout": timeout,
            "allow_redirects": allow_redirects,
        }

        if form_data:
            # Multipart: requests sets Content-Type with its own boundary
            req_headers = dict(headers) if headers else {}
            req_headers.pop("Content-Type", None)
            req_headers.pop("content-type", None)
            kwargs["headers"] = req_headers
            kwargs["data"] = form_data.get("data", {})
            kwargs["files"] = form_data.get("files", {})

        start = time.monotonic()
        if session is not None and use_cookie_jar:
            resp = session.request(**kwargs)
        else:
            resp = requests.request(**kwargs)
        result.elapsed_ms = (time.monotonic() - start) * 1000

        result.status_code = resp.status_code
        result.headers = dict(resp.headers)
        result.raw_text = resp.text

        try:
            result.body = resp.json()
        except (json.JSONDecodeError, ValueError):
            result.body = resp.text

    except requests.exceptions.Timeout:
        result.error = f"Request timed out after {timeout}s"
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"
    except Exception as e:
        result.error = f"Unexpected error: {e}"

    if result.error:
        logger.debug("%s %s failed: %s", method, url, result.error)
    return result
