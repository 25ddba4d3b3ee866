import logging
import os
from urllib.parse import urlencode

import httpx

from ohplus.core.errors import IntegrationError, InvalidInputError, NotConfiguredError

logger = logging.getLogger("ohplus.search")

DEFAULT_HITS_PER_PAGE = 50

PRODUCT_ATTRIBUTES = "name,type,location,price,site_code,image_url,category,seller_id"
PRODUCT_HIGHLIGHTS = "name,location"
ASSIGNMENT_ATTRIBUTES = (
    "saNumber,projectSiteId,projectSiteName,projectSiteLocation,serviceType,assignedTo,"
    "jobDescription,message,joNumber,requestedBy,status,coveredDateStart,coveredDateEnd,"
    "created,updated,company_id"
)
ASSIGNMENT_HIGHLIGHTS = "saNumber,projectSiteName,serviceType"


class SearchError(IntegrationError):
    def __init__(self, message: str, status_code: int = 500, details: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def empty_result(query: str = "", error: str | None = None) -> dict:
    result = {
        "hits": [],
        "nbHits": 0,
        "page": 0,
        "nbPages": 0,
        "hitsPerPage": 0,
        "processingTimeMS": 0,
        "query": query,
    }
    if error:
        result["error"] = error
    return result


def _index_config(assignments: bool) -> tuple[str | None, str | None, str | None]:
    app_id = os.getenv("ALGOLIA_APP_ID")
    api_key = os.getenv("ALGOLIA_API_KEY")
    if assignments:
        return app_id, api_key, os.getenv("ALGOLIA_ASSIGNMENTS_INDEX_NAME")
    return app_id, api_key, os.getenv("ALGOLIA_INDEX_NAME")


def build_params(
    query: str,
    assignments: bool = False,
    filters: str | None = None,
    page: int | None = None,
    hits_per_page: int = DEFAULT_HITS_PER_PAGE,
) -> str:
    params = {
        "query": query,
        "hitsPerPage": str(hits_per_page),
        "attributesToRetrieve": ASSIGNMENT_ATTRIBUTES if assignments else PRODUCT_ATTRIBUTES,
        "attributesToHighlight": ASSIGNMENT_HIGHLIGHTS if assignments else PRODUCT_HIGHLIGHTS,
    }
    if filters:
        params["filters"] = filters
    if page is not None:
        params["page"] = str(page)
    return urlencode(params)


def search(
    query: str | None,
    filters: str | None = None,
    page: int | None = None,
    hits_per_page: int = DEFAULT_HITS_PER_PAGE,
    assignments: bool = False,
    timeout: float = 8.0,
) -> dict:
    if not query or not isinstance(query, str):
        raise InvalidInputError("Query parameter is required and must be a string")
    app_id, api_key, index_name = _index_config(assignments)
    if not app_id or not api_key or not index_name:
        raise NotConfiguredError(
            "Algolia configuration is incomplete. Please check your environment variables."
        )
    url = f"https://{app_id}-dsn.algolia.net/1/indexes/{index_name}/query"
    headers = {
        "X-Algolia-API-Key": api_key,
        "X-Algolia-Application-Id": app_id,
        "Content-Type": "application/json",
    }
    body = {"params": build_params(query, assignments, filters, page, hits_per_page)}
    logger.info("algolia query index=%s query=%r filters=%r", index_name, query, filters)
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(url, headers=headers, json=body)
    except httpx.HTTPError as exc:
        logger.exception("algolia request failed index=%s", index_name)
        raise SearchError(
            "An error occurred while searching. Please try again later.", details=str(exc)
        ) from exc
    if response.status_code >= 400:
        logger.warning("algolia error status=%s body=%s", response.status_code, response.text)
        raise SearchError(
            f"Algolia API returned status {response.status_code}",
            status_code=response.status_code,
            details=response.text,
        )
    return response.json()
