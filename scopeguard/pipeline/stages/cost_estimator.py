"""Stage 5: Cost Estimator - price each conflict from the cost-rule table.

- Each changed attribute contributes its (category, attribute) base cost
- An attribute with no rule contributes zero; the conflict still surfaces
- Overhead items for a category are charged once, on the first CRITICAL
  conflict of that category
- Totals are rounded half-up to the cent and are never negative
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

import structlog

from scopeguard.config.tables import ConfigTables
from scopeguard.models import Conflict, CostLineItem, Severity

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


@dataclass
class CostTrace:
    """Complete trace of cost estimation for inspection."""
    conflicts_priced: int = 0
    unpriced_attributes: list[dict] = field(default_factory=list)
    overhead_categories: list[str] = field(default_factory=list)
    total: str = "0.00"


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Round to two decimals, half-up at the cent."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _render(description: str, old: str, new: str) -> str:
    return description.replace("{old}", old).replace("{new}", new)


def price_attribute_changes(conflict: Conflict, tables: ConfigTables) -> tuple[list[CostLineItem], list[str]]:
    """Line items for the changed attributes of one conflict.

    Returns:
        Tuple of (priced line items, attribute names with no cost rule).
    """
    items, unpriced = [], []
    for name in conflict.differing_attributes:
        rule = tables.cost_rule_for(conflict.category, name)
        if rule is None:
            unpriced.append(name)
            continue
        items.append(CostLineItem(
            description=_render(
                rule.description,
                conflict.old_spec.get(name, ""),
                conflict.new_spec.get(name, ""),
            ),
            amount=to_money(rule.amount),
        ))
    return items, unpriced


def estimate_costs(
    conflicts: Iterable[Conflict],
    tables: ConfigTables,
) -> tuple[list[Conflict], CostTrace]:
    """Attach cost impact and line items to every conflict.

    Pure and total: returns new Conflict objects in the same order and never
    raises for missing rules.
    """
    trace = CostTrace()
    priced: list[Conflict] = []
    overhead_charged: set[str] = set()
    grand_total = Decimal("0.00")

    for conflict in conflicts:
        items, unpriced = price_attribute_changes(conflict, tables)
        for name in unpriced:
            trace.unpriced_attributes.append({
                "conflict_id": conflict.conflict_id,
                "category": conflict.category,
                "attribute": name,
            })

        if conflict.severity == Severity.CRITICAL and conflict.category not in overhead_charged:
            overhead = tables.overhead_for(conflict.category)
            items.extend(
                CostLineItem(description=item.description, amount=to_money(item.amount))
                for item in overhead
            )
            overhead_charged.add(conflict.category)
            trace.overhead_categories.append(conflict.category)

        total = to_money(max(Decimal("0"), sum((i.amount for i in items), start=Decimal("0"))))
        grand_total += total
        priced.append(conflict.model_copy(update={
            "cost_impact": total,
            "cost_line_items": items,
        }))
        trace.conflicts_priced += 1

        logger.info(
            "conflict_priced",
            conflict_id=conflict.conflict_id,
            cost_impact=str(total),
            line_items=len(items),
            unpriced=unpriced,
        )

    trace.total = str(to_money(grand_total))
    return priced, trace
