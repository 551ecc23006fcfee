from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cms.models import QueryResponse
from common.config import yaml_config
from common.logger import get_logger

log = get_logger(__name__)

CDN_BASE_URL = "https://cdn.contentful.com"
RETRY_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
TAG_FILTER = "metadata.tags.sys.id"


class FetchError(RuntimeError):
    """The content query failed for good (after retries, or non-transient)."""


class TransientHTTPError(requests.HTTPError):
    pass


def build_entries_url(space_id: str, environment: str = "master") -> str:
    return f"{CDN_BASE_URL}/spaces/{space_id}/environments/{environment}/entries"


def build_query_params(
    content_type_id: str,
    main_topic_tag: str | None = None,
    sub_topic_tag: str | None = None,
    limit: int = 1000,
    include: int = 10,
    skip: int = 0,
) -> Dict[str, str]:
    """
    Query parameters for an entries request. Two tags are combined with
    ``[all]`` (AND); a single tag uses ``[in]``.
    """
    params = {
        "content_type": content_type_id,
        "limit": str(limit),
        "include": str(include),
    }
    if skip:
        params["skip"] = str(skip)

    if main_topic_tag and sub_topic_tag:
        params[f"{TAG_FILTER}[all]"] = f"{main_topic_tag},{sub_topic_tag}"
    elif main_topic_tag or sub_topic_tag:
        params[f"{TAG_FILTER}[in]"] = main_topic_tag or sub_topic_tag
    return params


@retry(
    retry=retry_if_exception_type(
        (requests.ConnectionError, requests.Timeout, TransientHTTPError)
    ),
    stop=stop_after_attempt(4),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    reraise=True,
)
def _get(url: str, access_token: str, params: Dict[str, str]) -> requests.Response:
    """GET with retry on connection errors and transient statuses."""
    resp = requests.get(
        url,
        params=params,
        timeout=yaml_config.app.timeout,
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "User-Agent": yaml_config.app.user_agent,
        },
    )
    if resp.status_code in RETRY_STATUSES:
        log.warning("Transient HTTP %s from %s, retrying", resp.status_code, url)
        raise TransientHTTPError(f"HTTP {resp.status_code}: {resp.reason}", response=resp)
    return resp


def fetch_json(url: str, access_token: str, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
    """Fetch and decode one JSON page; 204 yields None."""
    try:
        resp = _get(url, access_token, params)
        resp.raise_for_status()
    except requests.RequestException as e:
        log.error("HTTP error fetching %s: %s", url, e)
        raise FetchError(f"{e} - {url}") from e

    if resp.status_code == 204:
        return None
    try:
        return resp.json()
    except ValueError as e:
        log.error("Failed to parse JSON response from %s", url)
        raise FetchError(f"Failed to parse JSON response from {url}") from e


def get_entries(
    space_id: str,
    access_token: str,
    content_type_id: str,
    main_topic_tag: str | None = None,
    sub_topic_tag: str | None = None,
    environment: str | None = None,
) -> QueryResponse:
    """
    Fetch every entry of a content type, optionally filtered by metadata
    tags, with linked entries and assets side-loaded under ``includes``.
    Pages are requested until the reported total is reached.
    """
    cfg = yaml_config.contentful
    url = build_entries_url(space_id, environment or cfg.environment)

    response = QueryResponse()
    skip = 0
    while True:
        params = build_query_params(
            content_type_id,
            main_topic_tag,
            sub_topic_tag,
            limit=cfg.page_size,
            include=cfg.include_depth,
            skip=skip,
        )
        page = QueryResponse.from_json(fetch_json(url, access_token, params))
        response = response.merge(page)
        skip += len(page.items)
        if not page.items or skip >= page.total:
            break
        log.info("Fetched %d of %d entries", skip, page.total)
    return response
