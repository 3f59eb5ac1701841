from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from .config import PAGE_SIZE
from .errors import DataError, TransportError
from .model import UNKNOWN_DEADLINE, Opportunity

logger = logging.getLogger(__name__)

RESULTS_KEY = "opportunityPreviewDtos"


class OpportunitySearchClient:
    """Keyword search against the opportunity listing API, one page per call."""

    def __init__(self, api_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    async def page(self, term: str, page_number: int, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
        params = {
            "query": term,
            "page": str(page_number),
            "limit": str(page_size),
            "includeApplications": "false",
        }
        headers = {"Accept": "application/json"}
        try:
            if self._client is not None:
                response = await self._client.get(self.api_url, params=params, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.api_url, params=params, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"opportunity search failed for {term!r} page {page_number}: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"opportunity search returned invalid JSON for {term!r}: {exc}") from exc

        items = payload.get(RESULTS_KEY) if isinstance(payload, dict) else None
        if not items:
            return []
        return [item for item in items if isinstance(item, dict)]


def parse_listing(raw: Dict[str, Any]) -> Opportunity:
    opportunity_id = raw.get("opportunityId")
    if opportunity_id is None or not str(opportunity_id).strip():
        raise DataError("listing without opportunityId")

    company = str(_first(raw, "organizationBaseDtos").get("organizationName") or "Unknown")

    job_type = "N/A"
    job_types = raw.get("jobTypes")
    if isinstance(job_types, list) and job_types:
        job_type = f"Type {job_types[0]}"

    contact = str(_first(raw, "expertPreviews").get("name") or "")

    return Opportunity(
        id=str(opportunity_id),
        title=_text(raw, "opportunityName"),
        company=company,
        type=job_type,
        deadline=_deadline(raw.get("opportunitySignupDate")),
        description=_text(raw, "opportunityDescription"),
        url=_text(raw, "opportunityExtLink"),
        wage=_text(raw, "opportunityWage"),
        home_office=_text(raw, "opportunityHomeOffice"),
        benefits=_text(raw, "opportunityBenefit"),
        formal_requirements=_text(raw, "opportunityFormReq"),
        technical_requirements=_text(raw, "opportunityTechReq"),
        contact_person=contact,
    )


def _first(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    """First object of a nested list field, or an empty dict when the field has another shape."""
    items = raw.get(key)
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def _text(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value)


def _deadline(value: Any) -> str:
    """Signup dates arrive as epoch milliseconds."""
    if value is None:
        return UNKNOWN_DEADLINE
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc).date().isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("Unparseable signup date %r", value)
        return UNKNOWN_DEADLINE
