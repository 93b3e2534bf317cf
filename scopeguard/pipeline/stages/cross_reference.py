"""Stage 3: Baseline Cross-Referencer - align new facts with approved submittals.

MATCHING KEY: (category, normalized location label)
- Location labels are normalized (case, punctuation, configured aliases)
  and compared with a fuzzy token-sort ratio against a threshold
- Numbered words such as pit or car numbers must agree exactly
- Among matches, the highest similarity wins; ties go to the most recently
  approved submittal
- Equal approval dates are ambiguous and are surfaced for manual review,
  never guessed
- No matching record means UNCOORDINATED_NEW_SCOPE, which is informational
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import structlog
from rapidfuzz import fuzz

from scopeguard.baseline.store import BaselineReader
from scopeguard.errors import AmbiguousBaselineError
from scopeguard.models import AlignedPair, BaselineRecord, ReferenceStatus, SpecificationElement
from scopeguard.pipeline.models import CrossReferenceResult, ScopeFinding

logger = structlog.get_logger(__name__)

# Default similarity (0-100) for two location labels to be the same place
LOCATION_MATCH_THRESHOLD = 85.0


@dataclass
class MatchDecision:
    """Record of how one element was (or was not) aligned."""
    element_id: str
    status: str
    normalized_location: str
    candidates_considered: int = 0
    candidates_above_threshold: int = 0
    chosen_record_id: Optional[str] = None
    similarity: Optional[float] = None


@dataclass
class CrossReferenceTrace:
    """Complete trace of cross-referencing for inspection."""
    project_id: str
    threshold: float
    decisions: list[MatchDecision] = field(default_factory=list)
    lookups_made: int = 0


def normalize_location(label: str, aliases: Optional[dict[str, str]] = None) -> str:
    """Normalize a location label for matching.

    Lowercases, strips punctuation, applies word aliases (``svc`` ->
    ``service``; an empty alias drops the word) and collapses whitespace.
    """
    aliases = aliases or {}
    words = re.sub(r"[^\w\s]", " ", label.lower()).split()
    mapped = (aliases.get(word, word) for word in words)
    return " ".join(word for word in mapped if word)


def _numbered_words(label: str) -> list[str]:
    return sorted(word for word in label.split() if any(ch.isdigit() for ch in word))


def location_similarity(a: str, b: str) -> float:
    """Similarity of two normalized labels on a 0-100 scale.

    Numbered words must agree exactly: "pit 1" and "pit 12" share most of
    their characters but are different places, so they score 0.
    """
    if _numbered_words(a) != _numbered_words(b):
        return 0.0
    return float(fuzz.token_sort_ratio(a, b))


def select_baseline(
    element: SpecificationElement,
    candidates: Sequence[BaselineRecord],
    aliases: Optional[dict[str, str]] = None,
    threshold: float = LOCATION_MATCH_THRESHOLD,
) -> tuple[Optional[AlignedPair], MatchDecision]:
    """Pick the single best baseline record for an element.

    Returns:
        Tuple of (aligned pair or None when nothing matches, decision record).

    Raises:
        AmbiguousBaselineError: If the best matches tie on approval date.
    """
    key_location = normalize_location(element.location, aliases)
    decision = MatchDecision(
        element_id=element.element_id,
        status=ReferenceStatus.UNCOORDINATED_NEW_SCOPE.value,
        normalized_location=key_location,
        candidates_considered=len(candidates),
    )

    scored: list[tuple[float, BaselineRecord]] = []
    for record in candidates:
        if record.category != element.category:
            continue
        score = location_similarity(key_location, normalize_location(record.location, aliases))
        if score >= threshold:
            scored.append((score, record))
    decision.candidates_above_threshold = len(scored)

    if not scored:
        return None, decision

    best_score = max(score for score, _ in scored)
    best = [record for score, record in scored if score == best_score]
    latest = max(record.approved_on for record in best)
    newest = sorted(
        (record for record in best if record.approved_on == latest),
        key=lambda r: r.record_id,
    )

    if len(newest) > 1:
        decision.status = ReferenceStatus.NEEDS_MANUAL_REVIEW.value
        raise AmbiguousBaselineError(element.element_id, [r.record_id for r in newest])

    chosen = newest[0]
    decision.status = ReferenceStatus.MATCHED.value
    decision.chosen_record_id = chosen.record_id
    decision.similarity = best_score

    pair = AlignedPair(
        baseline=chosen,
        element=element,
        match_confidence=round(best_score / 100.0, 4),
        matching_key=(element.category, key_location),
    )
    return pair, decision


def cross_reference(
    elements: Iterable[SpecificationElement],
    reader: BaselineReader,
    project_id: str,
    aliases: Optional[dict[str, str]] = None,
    threshold: float = LOCATION_MATCH_THRESHOLD,
) -> tuple[CrossReferenceResult, CrossReferenceTrace]:
    """Align every element with its baseline record.

    An ambiguous element is moved to ``needs_review`` and the rest of the
    document continues. Store failures propagate to the caller, which owns
    the retry policy.

    Args:
        elements: In-scope elements in document order.
        reader: Read view from one Baseline Store transaction.
        project_id: Project whose baseline is consulted.
        aliases: Location word aliases.
        threshold: Minimum location similarity (0-100).

    Returns:
        Tuple of (cross-reference result, trace).

    Raises:
        BaselineStoreUnavailable: If the store cannot be read.
        BaselineStoreCorrupt: If the store holds invalid records.
    """
    result = CrossReferenceResult()
    trace = CrossReferenceTrace(project_id=project_id, threshold=threshold)

    for element in elements:
        candidates = reader.lookup(project_id, element.category, element.location)
        trace.lookups_made += 1

        try:
            pair, decision = select_baseline(element, candidates, aliases, threshold)
        except AmbiguousBaselineError as e:
            logger.warning(
                "ambiguous_baseline",
                element_id=element.element_id,
                location=element.location,
                record_ids=e.record_ids,
            )
            trace.decisions.append(MatchDecision(
                element_id=element.element_id,
                status=ReferenceStatus.NEEDS_MANUAL_REVIEW.value,
                normalized_location=normalize_location(element.location, aliases),
                candidates_considered=len(candidates),
            ))
            result.needs_review.append(ScopeFinding(
                element=element,
                status=ReferenceStatus.NEEDS_MANUAL_REVIEW,
                reason=str(e),
                candidate_record_ids=e.record_ids,
            ))
            continue

        trace.decisions.append(decision)
        if pair is None:
            logger.info(
                "uncoordinated_new_scope",
                element_id=element.element_id,
                category=element.category,
                location=element.location,
            )
            result.uncoordinated.append(ScopeFinding(
                element=element,
                status=ReferenceStatus.UNCOORDINATED_NEW_SCOPE,
                reason="No approved baseline record for this category and location",
            ))
        else:
            logger.debug(
                "baseline_matched",
                element_id=element.element_id,
                record_id=pair.baseline.record_id,
                submittal=pair.baseline.submittal_id,
                similarity=decision.similarity,
            )
            result.pairs.append(pair)

    logger.info(
        "cross_reference_complete",
        project_id=project_id,
        pairs=len(result.pairs),
        uncoordinated=len(result.uncoordinated),
        needs_review=len(result.needs_review),
    )
    return result, trace
