"""
Property text search.
Callers depend on PropertySearchBackend only, so an indexed search engine can
replace the in-memory substring matcher through the app context.
"""

from typing import List, Protocol, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from aashiyana.models.property import Property
    from aashiyana.repositories.property import PropertyRepository, PropertyFilters

logger = logging.getLogger(__name__)


class PropertySearchBackend(Protocol):
    """Anything that can answer a free-text listing query."""

    async def search(
        self,
        repository: "PropertyRepository",
        term: str,
        filters: "PropertyFilters",
    ) -> List["Property"]:
        ...


class SubstringPropertySearch:
    """
    Case-insensitive substring match over title and description.

    Runs the regular filtered listing query and filters the page in memory,
    so it only sees the first ``filters.limit`` listings. Fine for small
    catalogues; swap in an indexed backend beyond that.
    """

    async def search(self, repository, term, filters):
        needle = (term or "").strip().lower()
        candidates = await repository.find_all(filters)
        if not needle:
            return candidates

        matches = [
            item for item in candidates
            if needle in (item.title or "").lower() or needle in (item.description or "").lower()
        ]
        logger.debug(f"Search '{needle}' matched {len(matches)} of {len(candidates)} listings")
        return matches
