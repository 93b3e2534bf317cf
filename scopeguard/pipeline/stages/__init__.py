"""Pipeline stages - each stage is a pure transformation of the previous output.

1. extractor       Document -> SpecificationElements
2. scope_filter    elevator-relevant subset
3. cross_reference alignment with the approved baseline
4. classifier      Conflicts with severity
5. cost_estimator  cost impact per Conflict
6. rfi_drafter     RFIDraft per Conflict
"""

from scopeguard.pipeline.stages.extractor import (
    UNSPECIFIED_LOCATION,
    CompiledVocabulary,
    ExtractionTrace,
    PageExtractionTrace,
    compile_vocabulary,
    extract_page,
    extract_specifications,
)
from scopeguard.pipeline.stages.scope_filter import (
    ScopeFilterTrace,
    accept_all,
    discipline_predicate,
    filter_scope,
)
from scopeguard.pipeline.stages.cross_reference import (
    CrossReferenceTrace,
    MatchDecision,
    cross_reference,
    location_similarity,
    normalize_location,
    select_baseline,
)
from scopeguard.pipeline.stages.classifier import (
    ClassificationTrace,
    PairComparison,
    assign_severity,
    classify_pairs,
    compare_specs,
    normalize_value,
)
from scopeguard.pipeline.stages.cost_estimator import (
    CostTrace,
    estimate_costs,
    price_attribute_changes,
    to_money,
)
from scopeguard.pipeline.stages.rfi_drafter import draft_rfi, next_friday

__all__ = [
    # Stage functions
    "extract_specifications",
    "extract_page",
    "compile_vocabulary",
    "filter_scope",
    "discipline_predicate",
    "accept_all",
    "cross_reference",
    "select_baseline",
    "normalize_location",
    "location_similarity",
    "classify_pairs",
    "compare_specs",
    "assign_severity",
    "normalize_value",
    "estimate_costs",
    "price_attribute_changes",
    "to_money",
    "draft_rfi",
    "next_friday",
    # Trace classes (inspectable outputs)
    "ExtractionTrace",
    "PageExtractionTrace",
    "CompiledVocabulary",
    "ScopeFilterTrace",
    "CrossReferenceTrace",
    "MatchDecision",
    "ClassificationTrace",
    "PairComparison",
    "CostTrace",
    # Constants
    "UNSPECIFIED_LOCATION",
]
