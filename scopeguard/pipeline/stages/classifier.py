"""Stage 4: Conflict Classifier - field-by-field comparison of aligned pairs.

HARD RULES:
- A conflict exists only if a SHARED attribute differs after normalization
- Attributes present on one side only are evolution, not conflict; they are
  recorded in the trace and logged
- Severity is the maximum configured weight among differing attributes,
  never averaged and never assigned by hand
- Output order follows input order, so identical inputs give identical output
"""

import re
from dataclasses import dataclass, field
from typing import Iterable

import structlog

from scopeguard.config.tables import ConfigTables
from scopeguard.models import AlignedPair, Conflict, Severity

logger = structlog.get_logger(__name__)


@dataclass
class PairComparison:
    """Attribute-level outcome for one aligned pair."""
    element_id: str
    record_id: str
    differing: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    baseline_only: list[str] = field(default_factory=list)
    bulletin_only: list[str] = field(default_factory=list)


@dataclass
class ClassificationTrace:
    """Complete trace of classification for inspection."""
    comparisons: list[PairComparison] = field(default_factory=list)
    pairs_compared: int = 0
    pairs_unchanged: int = 0
    conflicts_raised: int = 0
    severity_counts: dict[str, int] = field(default_factory=dict)


def normalize_value(value: str) -> str:
    """Comparison form of an attribute value: '208 v' and '208V' are equal."""
    return re.sub(r"\s+", "", value).upper()


def compare_specs(old_spec: dict[str, str], new_spec: dict[str, str]) -> tuple[list[str], list[str], list[str], list[str]]:
    """Compare two attribute mappings.

    Returns:
        Tuple of (differing, unchanged, baseline_only, bulletin_only) attribute
        names. Shared attributes keep the baseline's order.
    """
    differing, unchanged = [], []
    for name, old_value in old_spec.items():
        if name not in new_spec:
            continue
        if normalize_value(old_value) != normalize_value(new_spec[name]):
            differing.append(name)
        else:
            unchanged.append(name)
    baseline_only = [name for name in old_spec if name not in new_spec]
    bulletin_only = [name for name in new_spec if name not in old_spec]
    return differing, unchanged, baseline_only, bulletin_only


def assign_severity(differing: Iterable[str], tables: ConfigTables) -> Severity:
    """Highest configured weight among the differing attributes."""
    weights = [tables.severity_for(name) for name in differing]
    if not weights:
        raise ValueError("Severity requires at least one differing attribute")
    return max(weights, key=lambda s: s.rank)


def _describe_change(name: str, old_spec: dict[str, str], new_spec: dict[str, str]) -> str:
    return f"{name.replace('_', ' ')} from {old_spec[name]} to {new_spec[name]}"


def build_reasoning(pair: AlignedPair, differing: list[str]) -> str:
    """Plain-language summary of why the pair conflicts."""
    old_spec = pair.baseline.attributes
    new_spec = pair.element.attributes
    changes = [_describe_change(name, old_spec, new_spec) for name in differing]
    if len(changes) > 1:
        change_text = ", ".join(changes[:-1]) + f" and {changes[-1]}"
    else:
        change_text = changes[0]

    subject = pair.baseline.description or pair.baseline.category.replace("_", " ").lower()
    return (
        f"Bulletin sheet {pair.element.sheet_ref} revises {change_text} at "
        f"{pair.element.location}. The approved {pair.baseline.submittal_id} "
        f"({pair.baseline.approved_on.isoformat()}) covers {subject} as "
        f"{' / '.join(old_spec.values())}. Equipment ordered to the approved "
        f"submittal will not match the revised design without a change order."
    )


def classify_pairs(
    pairs: Iterable[AlignedPair],
    document_id: str,
    tables: ConfigTables,
) -> tuple[list[Conflict], ClassificationTrace]:
    """Raise a Conflict for every aligned pair that disagrees.

    Args:
        pairs: Aligned pairs in document order.
        document_id: Bulletin the pairs came from.
        tables: Configuration tables holding severity weights.

    Returns:
        Tuple of (conflicts with zero cost, trace). Never raises for
        missing data; a pair with nothing to compare yields no conflict.
    """
    trace = ClassificationTrace()
    conflicts: list[Conflict] = []

    for pair in pairs:
        trace.pairs_compared += 1
        old_spec = pair.baseline.attributes
        new_spec = pair.element.attributes
        differing, unchanged, baseline_only, bulletin_only = compare_specs(old_spec, new_spec)

        trace.comparisons.append(PairComparison(
            element_id=pair.element.element_id,
            record_id=pair.baseline.record_id,
            differing=differing,
            unchanged=unchanged,
            baseline_only=baseline_only,
            bulletin_only=bulletin_only,
        ))

        if baseline_only or bulletin_only:
            logger.info(
                "one_sided_attributes",
                element_id=pair.element.element_id,
                baseline_only=baseline_only,
                bulletin_only=bulletin_only,
            )

        if not differing:
            trace.pairs_unchanged += 1
            continue

        severity = assign_severity(differing, tables)
        conflict = Conflict(
            conflict_id=f"C-{len(conflicts) + 1:03d}",
            document_id=document_id,
            severity=severity,
            category=pair.element.category,
            location=pair.element.location,
            old_spec=dict(old_spec),
            new_spec=dict(new_spec),
            differing_attributes=differing,
            sheet_ref=pair.element.sheet_ref,
            submittal_id=pair.baseline.submittal_id,
            approved_on=pair.baseline.approved_on,
            baseline_description=pair.baseline.description,
            reasoning=build_reasoning(pair, differing),
        )
        conflicts.append(conflict)
        trace.severity_counts[severity.value] = trace.severity_counts.get(severity.value, 0) + 1

        logger.warning(
            "conflict_detected",
            conflict_id=conflict.conflict_id,
            severity=severity.value,
            location=conflict.location,
            differing=differing,
        )

    trace.conflicts_raised = len(conflicts)
    return conflicts, trace
