import logging
import os

import httpx

from ohplus.core.errors import IntegrationError, InvalidInputError, NotConfiguredError

logger = logging.getLogger("ohplus.places")

PLACES_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"


def search_places(query: str | None, region: str = "ph", timeout: float = 6.0) -> dict:
    if not query or not query.strip():
        raise InvalidInputError("Query parameter is required")
    api_key = os.getenv("GOOGLE_MAPS_API_KEY")
    if not api_key:
        raise NotConfiguredError("Google Maps API key not configured")
    params = {
        "query": query.strip(),
        "region": region or "ph",
        "key": api_key,
        "fields": "place_id,name,formatted_address,geometry",
    }
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.get(PLACES_URL, params=params)
    except httpx.HTTPError as exc:
        logger.warning("places search failed: %s", exc)
        raise IntegrationError("Failed to search places") from exc
    if response.status_code >= 400:
        logger.warning("places search http status=%s", response.status_code)
        raise IntegrationError("Failed to search places")
    payload = response.json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.warning("places search status=%s", status)
        raise IntegrationError("Failed to search places")
    return {"results": payload.get("results") or [], "status": status}
