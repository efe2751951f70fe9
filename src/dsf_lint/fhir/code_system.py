"""CodeSystem rules."""

from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..validation import ItemCollector, Severity
from .base import (
    DATE_PLACEHOLDER,
    VERSION_PLACEHOLDER,
    FhirResourceRule,
    check_placeholder,
    check_present,
    check_status_unknown,
    has_read_access_tag,
)

MANDATORY_ELEMENTS = ("url", "name", "title", "publisher", "content", "caseSensitive")


class CodeSystemRule(FhirResourceRule):

    @property
    def resource_type(self) -> str:
        return "CodeSystem"

    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        items.check(has_read_access_tag(document, {"ALL"}), Severity.ERROR, "read_access_tag_missing",
                    "CodeSystem is missing read-access tag with code 'ALL'.",
                    "meta.tag (read-access-tag=ALL) present")
        for element in MANDATORY_ELEMENTS:
            check_present(document, items, element, "CodeSystem")
        check_status_unknown(document, items, "CodeSystem")
        check_placeholder(document, items, "version", VERSION_PLACEHOLDER, "CodeSystem", optional=True)
        check_placeholder(document, items, "date", DATE_PLACEHOLDER, "CodeSystem", Severity.WARN, optional=True)
        self._check_concepts(document, items)

    @staticmethod
    def _check_concepts(document: QueryNode, items: ItemCollector) -> None:
        concepts = document.find_all("concept")
        if not concepts:
            items.error("concept_missing", "CodeSystem must contain at least one concept.")
            return

        seen: set[str] = set()
        for concept in concepts:
            code = concept.value("code")
            if is_blank(code):
                items.error("concept_code_missing", "CodeSystem concept is missing code.")
            elif code in seen:
                items.error("concept_code_duplicate", f"CodeSystem has duplicate code: {code}")
            else:
                seen.add(code)
            if is_blank(concept.value("display")):
                items.error("concept_display_missing", f"CodeSystem concept '{code}' is missing display.")
        if len(seen) == len(concepts):
            items.success("concept_code_duplicate", f"all concept codes unique ({len(seen)})")
