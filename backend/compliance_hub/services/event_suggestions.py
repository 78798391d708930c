"""Follow-up suggestions raised automatically when an event is reported."""

from __future__ import annotations

from typing import NamedTuple

SUGGESTION_TYPE = "compliance_gap"
SUGGESTION_CONFIDENCE = 0.85
SUGGESTING_AGENT_TYPE = "COMPLIANCE_CHECKER"


class SuggestionTemplate(NamedTuple):
    title: str
    content: str
    rationale: str


_DEFAULT = (
    SuggestionTemplate(
        "Document Review",
        "Review related documentation to ensure current procedures address this event type.",
        "Regular document review ensures procedures remain current and effective.",
    ),
)

_CATALOGUE: dict[str, tuple[SuggestionTemplate, ...]] = {
    "NONCONFORMITY": (
        SuggestionTemplate(
            "Update Quality Manual Section 8.7",
            "Review and update nonconformity and corrective action procedures to prevent recurrence.",
            "ISO 9001:2015 Clause 8.7 requires documented procedures for controlling nonconforming "
            "outputs and implementing corrective actions.",
        ),
        SuggestionTemplate(
            "Schedule Root Cause Analysis",
            "Conduct systematic root cause analysis to identify underlying causes of this nonconformity.",
            "Effective corrective action requires understanding root causes rather than just symptoms.",
        ),
    ),
    "COMPLAINT": (
        SuggestionTemplate(
            "Review Customer Communication Process",
            "Evaluate customer feedback handling procedures and response times.",
            "ISO 9001:2015 Clause 9.1.2 requires monitoring customer satisfaction and feedback handling.",
        ),
        SuggestionTemplate(
            "Update Customer Service Training",
            "Schedule additional training for customer-facing staff on complaint resolution.",
            "Improved customer service skills can prevent similar complaints and enhance satisfaction.",
        ),
    ),
    "INCIDENT": (
        SuggestionTemplate(
            "Incident Response Plan Review",
            "Review and update incident response procedures based on lessons learned.",
            "ISO 27001:2022 Annex A 5.24 requires planned and prepared incident management.",
        ),
        SuggestionTemplate(
            "Security Awareness Training",
            "Schedule additional security awareness training for affected departments.",
            "Human factors are often involved in security incidents and can be addressed through training.",
        ),
    ),
    "RISK": (
        SuggestionTemplate(
            "Update Risk Register",
            "Add this risk to the organizational risk register and define treatment options.",
            "ISO 27001:2022 Clause 6.1.2 requires systematic risk identification and treatment.",
        ),
        SuggestionTemplate(
            "Risk Assessment Review",
            "Conduct detailed risk assessment to quantify likelihood and impact.",
            "Proper risk quantification enables appropriate resource allocation for treatment.",
        ),
    ),
}


def suggestions_for_event_type(event_type: str) -> tuple[SuggestionTemplate, ...]:
    """Deterministic catalogue lookup; unknown types get the generic review."""
    return _CATALOGUE.get(getattr(event_type, "value", event_type), _DEFAULT)
