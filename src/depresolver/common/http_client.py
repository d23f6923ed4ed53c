"""Blocking HTTP helpers used by the command-line client.

Connection failures and timeouts are logged and terminate the process with
``ExitCodes.CONNECTION_ERROR``; HTTP error statuses are returned to the
caller unchanged.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import requests

from depresolver.common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from depresolver.constants import Constants, ExitCodes

logger = logging.getLogger(__name__)

HEADERS = {"User-Agent": Constants.USER_AGENT, "Accept": "application/json"}


def _request(method: str, url: str, *, context: str, timeout: Optional[float], **kwargs: Any) -> requests.Response:
    safe_target = safe_url(url)
    headers = dict(HEADERS)
    headers.update(kwargs.pop("headers", None) or {})
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action=method,
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = requests.request(
                method,
                url,
                headers=headers,
                timeout=timeout or Constants.REQUEST_TIMEOUT,
                **kwargs,
            )
        except requests.Timeout:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                timeout or Constants.REQUEST_TIMEOUT,
            )
            sys.exit(ExitCodes.CONNECTION_ERROR.value)
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error("%s connection error: %s", context, exc)
            sys.exit(ExitCodes.CONNECTION_ERROR.value)
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action=method,
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return res


def safe_get(url: str, *, context: str, timeout: Optional[float] = None, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces."""
    return _request("GET", url, context=context, timeout=timeout, **kwargs)


def safe_post(
    url: str,
    *,
    context: str,
    json_body: Any = None,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a POST request with a JSON body.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "submit").
        json_body: Object serialized as the request body.
        **kwargs: Passed through to requests.request.

    Returns:
        requests.Response: The HTTP response object.
    """
    return _request("POST", url, context=context, timeout=timeout, json=json_body, **kwargs)
