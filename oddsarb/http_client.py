from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)


def get_json(
    url: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
    timeout: float = 10.0,
    retries: int = 3,
    backoff: float = 0.5,
) -> tuple[Optional[Any], Optional[int]]:
    """GET ``url`` and decode JSON.

    Returns ``(payload, status_code)``. Connection errors, 5xx and 429 are
    retried with exponential backoff; after the last attempt a connection error
    yields ``(None, None)`` and an HTTP error yields ``(payload_or_None, status)``.

    Nothing is raised: callers decide from ``status``. The odds source treats
    anything but 200 with a list body as a failed request, which becomes
    ``SourceUnavailable`` for the sports listing and ``PartialFetchFailure`` for
    a single sport's odds.
    """
    retries = max(1, retries)
    for attempt in range(retries):
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=timeout)
        except requests.RequestException as exc:
            if attempt < retries - 1:
                time.sleep(backoff * (2 ** attempt))
                continue
            logger.warning("Request failed url=%s error=%s", url, exc)
            return None, None
        if (resp.status_code >= 500 or resp.status_code == 429) and attempt < retries - 1:
            time.sleep(backoff * (2 ** attempt))
            continue
        try:
            return resp.json(), resp.status_code
        except ValueError:
            return None, resp.status_code
    return None, None
