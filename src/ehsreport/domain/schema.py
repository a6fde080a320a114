"""Canonical shape and default values of a monthly EHS report document.

The template below is the single source of truth for which sections and
leaf fields a report carries. It is stored deeply frozen: records are
read-only mappings and collections are tuples, so nothing that reads the
template can change it. Callers that need a mutable document use
``default_document()`` (or ``thaw``) and always receive a fresh copy.

A top-level section is one of three kinds:

- a scalar record: a flat mapping of primitives
- a nested record: a mapping that holds further records
- a collection: an ordered sequence of homogeneous items
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final

from .errors import UnknownSectionError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .types import ReportDocument


class SectionKind(StrEnum):
    """Shape of a top-level report section."""

    SCALAR_RECORD = "scalar_record"
    NESTED_RECORD = "nested_record"
    COLLECTION = "collection"


def freeze(value: Any) -> Any:
    """Return a deeply read-only view of a JSON-like value."""

    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, list | tuple):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Return a fresh mutable deep copy (dicts and lists) of a JSON-like value."""

    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [thaw(item) for item in value]
    return value


CANONICAL_DOCUMENT: Final[Mapping[str, Any]] = freeze(
    {
        # Section 1: basic information
        "basicInfo": {
            "projectName": "UCPL 590 MW CCPP",
            "location": "Chattogram, Bangladesh",
            "client": "United Chattogram Power Ltd.",
            "contractor": "EPC Consortium",
            "manpower": {
                "total": 0,
                "avgDaily": 0,
                "byTrade": [
                    {"trade": "Civil", "count": 0},
                    {"trade": "Mechanical", "count": 0},
                    {"trade": "Electrical", "count": 0},
                    {"trade": "Safety", "count": 0},
                    {"trade": "Others", "count": 0},
                ],
            },
            "keyContacts": {
                "ehsManager": "",
                "ehsExecutive": "",
                "siteDoctor": "",
            },
        },
        # Section 2: policy and objectives
        "policyObjectives": {
            "policy": (
                "To provide a safe and healthy working environment for all "
                "employees and stakeholders."
            ),
            "objectives": [
                "Zero Fatality",
                "Zero LTI",
                "100% Induction Compliance",
                "95% Action Close-out (7 days)",
            ],
        },
        # Section 3: KPI metrics
        "kpis": {
            "manHours": {"current": 0, "cumulative": 0},
            "laggingIndicators": {
                "trir": 0.0,
                "ltifr": 0.0,
                "lti": 0,
                "firstAid": 0,
                "nearMiss": 0,
                "propertyDamage": 0,
            },
            # uaUc: unsafe acts/conditions reported, walkthroughs: management walkthroughs
            "leadingIndicators": {"uaUc": 0, "walkthroughs": 0},
        },
        # Section 4: site inspections and observations
        "siteInspections": [],
        # Section 5: incidents
        "incidents": {
            "total": 0,
            "fireIncidents": [],
            "firstAidIncidents": [],
            "ffhIncidents": [],
        },
        # Section 6: training, emergency preparedness and campaigns
        "programs": {
            "training": {
                "inductionConducted": False,
                "inductionParticipants": 0,
                "toolboxTalks": [],
                "specificTraining": [],
                "totalManHours": 0,
            },
            "emergencyPreparedness": {
                "mockDrillConducted": False,
                "mockDrillDetails": {"type": "", "date": "", "participants": 0},
                "fireEquipmentInspected": False,
            },
            "campaigns": {
                "safetyCommitteeMeeting": {"conducted": False, "date": ""},
                "healthHygiene": {"conducted": False, "topic": "", "beneficiaries": 0},
                "rewardsRecognition": {"conducted": False, "recipients": []},
                "specialDays": [],
            },
        },
        # Section 7: high-risk work controls
        "highRiskWork": {
            "permits": [],
            "audits": [],
        },
        # Section 8: environmental metrics
        "environment": {
            "waste": {"hazardous": "", "nonHazardous": "", "recycled": ""},
            "spills": 0,
            "consumption": {"water": "", "fuel": ""},
        },
        # Section 9: compliance
        "compliance": {
            "externalAudits": [],
            "legalNotices": 0,
        },
        # Section 10: open issues and support needed
        "issues": {
            "challenges": [],
            "supportNeeded": [],
        },
        # Section 11: improvement plan
        "improvementPlan": {
            "priorities": [],
            "targets": "",
        },
    }
)

# Editor ordering; compliance has no editor page of its own.
SECTION_KEYS: Final[tuple[str, ...]] = (
    "basicInfo",
    "policyObjectives",
    "kpis",
    "siteInspections",
    "incidents",
    "programs",
    "highRiskWork",
    "environment",
    "issues",
    "improvementPlan",
)


def default_document() -> ReportDocument:
    """Return a fresh, mutable copy of the canonical default document."""

    return thaw(CANONICAL_DOCUMENT)


def section_kind(section: str) -> SectionKind:
    """Classify a top-level section of the canonical schema."""

    try:
        template = CANONICAL_DOCUMENT[section]
    except KeyError:
        raise UnknownSectionError(section) from None
    if isinstance(template, tuple):
        return SectionKind.COLLECTION
    if any(isinstance(value, Mapping) for value in template.values()):
        return SectionKind.NESTED_RECORD
    return SectionKind.SCALAR_RECORD


def canonical_leaf_paths() -> tuple[tuple[str, ...], ...]:
    """Return the path of every leaf (scalar or collection) in the template."""

    return tuple(_iter_leaf_paths(CANONICAL_DOCUMENT, ()))


def _iter_leaf_paths(
    template: Mapping[str, Any], prefix: tuple[str, ...]
) -> Iterator[tuple[str, ...]]:
    for key, value in template.items():
        path = (*prefix, key)
        if isinstance(value, Mapping):
            yield from _iter_leaf_paths(value, path)
        else:
            yield path


__all__ = [
    "CANONICAL_DOCUMENT",
    "SECTION_KEYS",
    "SectionKind",
    "canonical_leaf_paths",
    "default_document",
    "freeze",
    "section_kind",
    "thaw",
]
