"""Stage 2: Scope Filter - keep only elevator-relevant elements.

Matching is a case-insensitive substring test of the configured scope
keywords against each element's category and location label. Each element
is tested once and kept at most once.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import structlog

from scopeguard.models import Discipline, SpecificationElement

logger = structlog.get_logger(__name__)

DisciplinePredicate = Callable[[SpecificationElement], bool]


@dataclass
class ScopeFilterTrace:
    """Which keywords matched and what was dropped."""
    elements_in: int = 0
    elements_out: int = 0
    excluded_by_discipline: int = 0
    keyword_hits: dict[str, int] = field(default_factory=dict)
    matches: list[dict] = field(default_factory=list)


def accept_all(element: SpecificationElement) -> bool:
    return True


def discipline_predicate(*disciplines: Discipline) -> DisciplinePredicate:
    """Predicate accepting elements read from sheets of the given disciplines."""
    allowed = frozenset(disciplines)

    def _predicate(element: SpecificationElement) -> bool:
        return element.discipline in allowed

    return _predicate


def _first_keyword(element: SpecificationElement, keywords: list[tuple[str, str]]) -> Optional[str]:
    category = element.category.lower()
    location = element.location.lower()
    for keyword, lowered in keywords:
        if lowered in category or lowered in location:
            return keyword
    return None


def filter_scope(
    elements: Iterable[SpecificationElement],
    keywords: Iterable[str],
    include: Optional[DisciplinePredicate] = None,
) -> tuple[list[SpecificationElement], ScopeFilterTrace]:
    """Select elements in elevator scope.

    Args:
        elements: Extracted elements in document order.
        keywords: Scope keywords (case-insensitive substrings).
        include: Discipline-inclusion predicate; defaults to accepting all.

    Returns:
        Tuple of (in-scope elements in original order, trace). An empty
        result is valid.
    """
    include = include or accept_all
    prepared = [(k, k.lower()) for k in keywords if k.strip()]
    trace = ScopeFilterTrace()
    selected: list[SpecificationElement] = []

    for element in elements:
        trace.elements_in += 1
        if not include(element):
            trace.excluded_by_discipline += 1
            continue

        keyword = _first_keyword(element, prepared)
        if keyword is None:
            continue

        selected.append(element)
        trace.keyword_hits[keyword] = trace.keyword_hits.get(keyword, 0) + 1
        trace.matches.append({
            "element_id": element.element_id,
            "keyword": keyword,
            "sheet": element.sheet_code,
            "page": element.page_number,
        })
        logger.info(
            "scope_match_found",
            keyword=keyword,
            sheet=element.sheet_code,
            page=element.page_number,
            location=element.location,
        )

    trace.elements_out = len(selected)
    return selected, trace
