"""Stage 6: RFI Drafter - render a conflict as a Request For Information.

Values are substituted into a fixed template with ``string.Template``;
substituted text is never re-parsed, so anything a bulletin or submittal
contains is inserted verbatim. Nothing is sent or stored here.
"""

from datetime import date, timedelta
from string import Template
from typing import Optional

import structlog

from scopeguard.models import Conflict, RecipientInfo, RFIDraft, format_attributes

logger = structlog.get_logger(__name__)

FRIDAY = 4

SUBJECT_TEMPLATE = Template("RFI - $bulletin_id $attribute Conflict - $project_name")

QUESTION_TEMPLATES = [
    Template("Please confirm the intended $attributes for $location."),
    Template(
        "If the $bulletin_id values ($new_spec) are correct, please issue a formal "
        "change order for the affected equipment."
    ),
    Template("Please advise on schedule impact if the equipment specification changes."),
]

BODY_TEMPLATE = Template("""Hi $gc_first_name,

ScopeGuard detected a discrepancy on Sheet $sheet_ref of $bulletin_id that requires clarification before we can proceed.

CONFLICT SUMMARY:
- Location: $location
- Severity: $severity
- Approved $submittal_id ($approved_on): $old_spec
- $bulletin_id Revision: $new_spec

$reasoning

QUESTIONS:
$questions

ESTIMATED IMPACT:
If the $bulletin_id revision is confirmed: $cost_impact$cost_breakdown

Please respond by EOD $response_due to maintain schedule. We are holding installation at $location until this is resolved.

Best regards,
$sender_name
$sender_title""")


def next_friday(today: date) -> date:
    """The coming Friday; a week out when today is already Friday."""
    days_ahead = (FRIDAY - today.weekday()) % 7
    return today + timedelta(days=days_ahead or 7)


def format_money(amount) -> str:
    return f"${amount:,.2f}"


def _lead_attribute(conflict: Conflict) -> str:
    """Title for the subject line: the first differing attribute."""
    return conflict.differing_attributes[0].replace("_", " ").title()


def _cost_breakdown(conflict: Conflict) -> str:
    if not conflict.cost_line_items:
        return ""
    parts = [f"{item.description} ({format_money(item.amount)})" for item in conflict.cost_line_items]
    return " (" + " + ".join(parts) + ")"


def draft_rfi(
    conflict: Conflict,
    recipient: RecipientInfo,
    today: Optional[date] = None,
) -> RFIDraft:
    """Render one conflict into an RFI draft.

    Args:
        conflict: The priced conflict.
        recipient: GC contact, CC list and project context from the caller.
        today: Reference date for the response deadline; defaults to today.

    Returns:
        RFIDraft for the external send/copy collaborator.
    """
    today = today or date.today()
    due = next_friday(today)
    old_text = format_attributes(conflict.old_spec)
    new_text = format_attributes(conflict.new_spec)

    questions = "\n".join(
        f"{n}. "
        + template.substitute(
            attributes=" and ".join(a.replace("_", " ") for a in conflict.differing_attributes),
            location=conflict.location,
            bulletin_id=recipient.bulletin_id,
            new_spec=new_text,
        )
        for n, template in enumerate(QUESTION_TEMPLATES, start=1)
    )

    subject = SUBJECT_TEMPLATE.substitute(
        bulletin_id=recipient.bulletin_id,
        attribute=_lead_attribute(conflict),
        project_name=recipient.project_name,
    )

    body = BODY_TEMPLATE.substitute(
        gc_first_name=recipient.gc_contact.name.split()[0] if recipient.gc_contact.name.strip() else "",
        sheet_ref=conflict.sheet_ref,
        bulletin_id=recipient.bulletin_id,
        location=conflict.location,
        severity=conflict.severity.value,
        submittal_id=conflict.submittal_id,
        approved_on=conflict.approved_on.isoformat(),
        old_spec=old_text,
        new_spec=new_text,
        reasoning=conflict.reasoning,
        questions=questions,
        cost_impact=format_money(conflict.cost_impact),
        cost_breakdown=_cost_breakdown(conflict),
        response_due=due.strftime("%A, %B %d, %Y"),
        sender_name=recipient.sender_name,
        sender_title=recipient.sender_title,
    )

    logger.info(
        "rfi_drafted",
        conflict_id=conflict.conflict_id,
        to=recipient.gc_contact.name,
        response_due=due.isoformat(),
    )

    return RFIDraft(
        conflict_id=conflict.conflict_id,
        subject=subject,
        to=str(recipient.gc_contact),
        cc=[str(contact) for contact in recipient.cc],
        body=body,
        response_due=due,
    )
