from __future__ import annotations

import asyncio
import logging
import re
from typing import Dict, List, Protocol

from .config import MAX_PAGES_PER_TERM, PAGE_SIZE
from .errors import DataError
from .model import Opportunity
from .search import parse_listing

logger = logging.getLogger(__name__)

TERM_SPLIT = re.compile(r"[,\s]+")


class SearchGateway(Protocol):
    async def page(self, term: str, page_number: int, page_size: int = PAGE_SIZE) -> List[dict]: ...


class AssignmentRepository(Protocol):
    def exists(self, user_id: str, opportunity_id: str) -> bool: ...

    def insert(self, user_id: str, opportunity: Opportunity) -> bool: ...


def split_terms(interest_text: str) -> List[str]:
    """Lower-cased search terms, blanks dropped, repeats searched once."""
    terms: List[str] = []
    for term in TERM_SPLIT.split(interest_text.lower()):
        if term and term not in terms:
            terms.append(term)
    return terms


class OpportunityAggregator:
    def __init__(
        self,
        search: SearchGateway,
        assignments: AssignmentRepository,
        page_size: int = PAGE_SIZE,
        max_pages: int = MAX_PAGES_PER_TERM,
        concurrency: int = 4,
    ):
        self.search = search
        self.assignments = assignments
        self.page_size = page_size
        self.max_pages = max_pages
        self.concurrency = max(1, concurrency)

    async def aggregate(self, user_id: str, interest_text: str) -> List[Opportunity]:
        """Search every term, union the results by opportunity id and store new ones for the user.

        The returned list does not depend on whether storing succeeded.
        """
        results = await self.collect(interest_text)
        await asyncio.to_thread(self.persist, user_id, results)
        return results

    async def collect(self, interest_text: str) -> List[Opportunity]:
        terms = split_terms(interest_text)
        if not terms:
            logger.info("No search terms in %r", interest_text)
            return []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bound_search(term: str) -> List[Opportunity]:
            async with semaphore:
                return await self._search_term(term)

        per_term = await asyncio.gather(*(bound_search(term) for term in terms))

        merged: Dict[str, Opportunity] = {}
        for listings in per_term:
            for opportunity in listings:
                merged.setdefault(opportunity.id, opportunity)
        logger.info("Total opportunities found for %d terms: %d", len(terms), len(merged))
        return list(merged.values())

    async def _search_term(self, term: str) -> List[Opportunity]:
        found: Dict[str, Opportunity] = {}
        for page_number in range(1, self.max_pages + 1):
            logger.debug("Searching %r page %d", term, page_number)
            try:
                raw_page = await self.search.page(term, page_number, self.page_size)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error searching %r on page %d: %s", term, page_number, exc)
                break
            for raw in raw_page:
                try:
                    opportunity = parse_listing(raw)
                except DataError as exc:
                    logger.warning("Skipping malformed listing for %r: %s", term, exc)
                    continue
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Could not parse listing for %r: %r", term, exc)
                    continue
                found.setdefault(opportunity.id, opportunity)
            if len(raw_page) < self.page_size:
                break
        return list(found.values())

    def persist(self, user_id: str, opportunities: List[Opportunity]) -> int:
        stored = 0
        for opportunity in opportunities:
            try:
                if self.assignments.exists(user_id, opportunity.id):
                    logger.debug("Opportunity %s already exists for %s", opportunity.id, user_id)
                    continue
                if self.assignments.insert(user_id, opportunity):
                    stored += 1
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to store opportunity %s for %s: %s", opportunity.id, user_id, exc)
        return stored
