"""Task rules: example Task resources that start a process.

Besides the structural checks, the Task's ``input`` elements are counted
against the ``Task.input`` slices of the profile named in ``meta.profile``
when that StructureDefinition is part of the project.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import PurePath

from ..cardinality import ElementBounds, SliceCardinality, check_instance_counts, read_element_bounds, read_slices
from ..codes import BPMN_MESSAGE, TASK_STATUS
from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..resolver import strip_version
from ..validation import ItemCollector, Severity
from .base import DATE_PLACEHOLDER, ORGANIZATION_PLACEHOLDER, VERSION_PLACEHOLDER, FhirResourceRule

logger = logging.getLogger(__name__)

ORGANIZATION_IDENTIFIER = "http://dsf.dev/sid/organization-identifier"
TASK_INPUT = "Task.input"

STATUSES_REQUIRING_BUSINESS_KEY = frozenset({"in-progress", "completed", "failed"})

_PARTIES = (
    ("requester", "requester/identifier"),
    ("recipient", "restriction/recipient/identifier"),
)


@dataclass(frozen=True)
class InputProfile:
    """``Task.input`` bounds and slices read from the Task profile."""
    base: ElementBounds
    slices: tuple[SliceCardinality, ...]

    def slice(self, name: str) -> SliceCardinality | None:
        return next((s for s in self.slices if s.slice_name == name), None)


def load_input_profile(structure_definition: QueryNode) -> InputProfile | None:
    """Read ``Task.input`` from the differential, else the snapshot.

    Returns None if a bound cannot be parsed.
    """
    try:
        for section in ("differential", "snapshot"):
            base = read_element_bounds(structure_definition, TASK_INPUT, section)
            slices = read_slices(structure_definition, base or ElementBounds(TASK_INPUT), section)
            if base is not None or slices:
                return InputProfile(base or ElementBounds(TASK_INPUT), tuple(slices))
        return InputProfile(ElementBounds(TASK_INPUT), ())
    except ValueError as e:
        logger.debug(f"Unreadable Task.input cardinality: {e}")
        return None


def input_value(task_input: QueryNode) -> str | None:
    """The value[x] of a Task.input as text, or None if it has none."""
    for child in task_input.children():
        if not child.name.startswith("value"):
            continue
        if child.attr("value") is not None:
            return child.attr("value")
        if child.name == "valueReference":
            value = child.value("reference") or child.value("identifier/value")
            if not is_blank(value):
                return value
        if child.name == "valueIdentifier":
            value = child.value("value")
            if not is_blank(value):
                return value
    return None


class TaskRule(FhirResourceRule):
    """Checks draft Task resources shipped with a plugin."""

    @property
    def resource_type(self) -> str:
        return "Task"

    def reference(self, document: QueryNode, source: str | None) -> str | None:
        canonical = document.value("instantiatesCanonical")
        if not is_blank(canonical):
            return strip_version(canonical)
        identifier = document.value("identifier/value")
        if not is_blank(identifier):
            return identifier
        return PurePath(source).name if source else None

    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        self._check_meta_and_basics(document, context, items)
        self._check_parties(document, items)
        self._check_inputs(document, context, items)
        self._check_terminology(document, context, items)

    # ==================== meta and basics ====================

    @staticmethod
    def _check_meta_and_basics(document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        items.check(
            bool(document.values("meta/profile")), Severity.ERROR, "task_profile_missing",
            "Task is missing meta.profile.", "meta.profile present.",
        )

        canonical = document.value("instantiatesCanonical")
        if is_blank(canonical):
            items.error("task_instantiates_canonical_missing", "Task is missing instantiatesCanonical.")
        else:
            items.success("task_instantiates_canonical_missing", "instantiatesCanonical found.")
            items.check(
                canonical.endswith(f"|{VERSION_PLACEHOLDER}"), Severity.ERROR,
                "task_instantiates_canonical_placeholder",
                f"instantiatesCanonical must end with '|{VERSION_PLACEHOLDER}', got: '{canonical}'",
                f"instantiatesCanonical ends with '|{VERSION_PLACEHOLDER}' as expected.",
            )
            items.check(
                context.resolver.activity_definition_for(canonical) is not None, Severity.ERROR,
                "task_instantiates_canonical_unknown",
                f"No ActivityDefinition '{canonical}' found in the project.",
                "ActivityDefinition exists.",
            )

        status = document.value("status")
        if is_blank(status):
            items.error("task_status_missing", "Task is missing <status>.")
        else:
            items.check(status == "draft", Severity.ERROR, "task_status_not_draft",
                        f"status must be 'draft' (found '{status}')", "status = 'draft'")

        intent = document.value("intent")
        items.check(intent == "order", Severity.ERROR, "task_intent_not_order",
                    f"intent must be 'order' (found '{intent}')", "intent = order")

        authored_on = document.value("authoredOn")
        items.check(
            authored_on is None or DATE_PLACEHOLDER in authored_on, Severity.ERROR, "task_date_no_placeholder",
            f"<authoredOn> must contain '{DATE_PLACEHOLDER}'.", "<authoredOn> placeholder OK.",
        )

    @staticmethod
    def _check_parties(document: QueryNode, items: ItemCollector) -> None:
        for role, path in _PARTIES:
            label = path.replace("/", ".")
            system = document.value(f"{path}/system")
            if is_blank(system):
                items.error(f"task_{role}_missing", f"Task is missing {label}.system.")
            else:
                items.check(
                    system == ORGANIZATION_IDENTIFIER, Severity.ERROR, f"task_{role}_invalid",
                    f"{label}.system must be '{ORGANIZATION_IDENTIFIER}'", f"{label}.system OK",
                )
            value = document.value(f"{path}/value")
            items.check(
                value == ORGANIZATION_PLACEHOLDER, Severity.ERROR, f"task_{role}_no_placeholder",
                f"{label}.value must be '{ORGANIZATION_PLACEHOLDER}' (found '{value}').",
                f"{label}.value placeholder OK.",
            )

    # ==================== inputs ====================

    def _check_inputs(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        profile_url = document.value("meta/profile")
        profile = self._input_profile(profile_url, context)
        if profile is None:
            items.info("task_profile_not_loaded",
                       f"StructureDefinition for profile '{profile_url}' not found; "
                       f"instance-level cardinality check skipped.")

        inputs = document.find_all("input")
        if not inputs:
            items.error("task_input_missing", "Task has no input.")
            return

        pairs: Counter[str] = Counter()
        slice_counts: Counter[str] = Counter()
        message_codes = set()
        for task_input in inputs:
            system = task_input.value("type/coding/system")
            code = task_input.value("type/coding/code")
            if not is_blank(code):
                slice_counts[code] += 1
            if is_blank(system) or is_blank(code):
                items.error("task_input_coding", "Task.input without system/code")
                continue
            pairs[f"{system}#{code}"] += 1
            items.success("task_input_coding", f"Task.input has required system and code: {system}#{code}")

            value = input_value(task_input)
            items.check(value is not None and not is_blank(value), Severity.ERROR, "task_input_value_missing",
                        f"Task.input({code}) missing value[x]", f"input '{code}' value='{value}'")
            if system == BPMN_MESSAGE:
                message_codes.add(code)

        duplicates = {pair: count for pair, count in pairs.items() if count > 1}
        for pair, count in duplicates.items():
            items.error("task_input_duplicate_slice", f"Duplicate slice '{pair}' ({count}x)")
        if not duplicates:
            items.success("task_input_duplicate_slice", "No duplicate Task.input slices detected")

        items.check("message-name" in message_codes, Severity.ERROR, "task_input_message_name_missing",
                    "Task.input with code 'message-name' is required.", "mandatory slice 'message-name' present")

        status = document.value("status")
        items.check(
            not context.codes.is_unknown(TASK_STATUS, status), Severity.ERROR, "task_status_unknown",
            f"Task status '{status}' is not a known task status.", f"Task status '{status}' is valid",
        )
        self._check_business_key(status, "business-key" in message_codes, items)
        self._check_correlation_key(profile, "correlation-key" in message_codes, items)

        if profile is not None:
            for finding in check_instance_counts(profile.base, list(profile.slices), len(inputs), dict(slice_counts)):
                items.add(finding.severity, f"task_{finding.kind}", finding.message)

    @staticmethod
    def _input_profile(profile_url: str | None, context: ValidationContext) -> InputProfile | None:
        entry = context.resolver.structure_definition_for(profile_url)
        if entry is None or entry.document is None:
            return None
        return load_input_profile(entry.document)

    @staticmethod
    def _check_business_key(status: str | None, present: bool, items: ItemCollector) -> None:
        if status in STATUSES_REQUIRING_BUSINESS_KEY:
            items.check(present, Severity.ERROR, "task_business_key_missing",
                        f"status='{status}' needs business-key",
                        f"status='{status}' and business-key present as required")
        elif status == "draft":
            items.check(not present, Severity.ERROR, "task_business_key_exists",
                        "business-key must not be present when status is 'draft'",
                        "status=draft and business-key correctly absent")
        else:
            items.info("task_business_key_skipped", f"Business key check skipped for status '{status}'")

    @staticmethod
    def _check_correlation_key(profile: InputProfile | None, present: bool, items: ItemCollector) -> None:
        correlation = profile.slice("correlation-key") if profile is not None else None
        if present:
            allowed = correlation is not None and correlation.max != 0
            items.check(allowed, Severity.ERROR, "task_correlation_key_exists",
                        "correlation input is not allowed by StructureDefinition",
                        "correlation input present and permitted by StructureDefinition")
        elif correlation is not None and correlation.min > 0:
            items.error("task_correlation_key_missing",
                        f"correlation input missing but slice min-cardinality is {correlation.min}")
        else:
            items.success("task_correlation_key_missing", "correlation input absent as expected")

    # ==================== terminology ====================

    @staticmethod
    def _check_terminology(document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        unknown = 0
        for coding in document.iter("coding"):
            system = coding.value("system")
            code = coding.value("code")
            if context.codes.is_unknown(system, code):
                unknown += 1
                items.error("task_unknown_code", f"Unknown code '{code}' in '{system}'")
        if not unknown:
            items.success("task_unknown_code", "All codings use known codes.")
