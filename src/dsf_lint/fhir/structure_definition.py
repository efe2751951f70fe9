"""StructureDefinition rules: metadata, differential and slice cardinality."""

from ..cardinality import check_slice_bounds, read_slices, sliced_base_elements
from ..codes import READ_ACCESS_TAG
from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..validation import ItemCollector, Severity
from .base import (
    DATE_PLACEHOLDER,
    VERSION_PLACEHOLDER,
    FhirResourceRule,
    check_placeholder,
    check_status_unknown,
    read_access_tags,
)


class StructureDefinitionRule(FhirResourceRule):
    """Checks profiles shipped with a plugin."""

    @property
    def resource_type(self) -> str:
        return "StructureDefinition"

    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        tags = read_access_tags(document)
        tag_ok = any(system == READ_ACCESS_TAG and not context.codes.is_unknown(READ_ACCESS_TAG, code)
                     for system, code in tags)
        items.check(tag_ok, Severity.ERROR, "read_access_tag_missing",
                    "StructureDefinition is missing a read-access tag with a known code.",
                    f"meta.tag read-access-tag OK ({len(tags)} tag(s))")

        url = document.value("url")
        items.check(not is_blank(url), Severity.ERROR, "url_missing",
                    "StructureDefinition is missing <url> or it is empty.", f"url present: '{url}'")
        check_status_unknown(document, items, "StructureDefinition")
        check_placeholder(document, items, "version", VERSION_PLACEHOLDER, "StructureDefinition")
        check_placeholder(document, items, "date", DATE_PLACEHOLDER, "StructureDefinition")

        self._check_sections(document, items)
        self._check_element_ids(document, items)
        self._check_slice_cardinality(document, items)

    @staticmethod
    def _check_sections(document: QueryNode, items: ItemCollector) -> None:
        items.check(document.child("differential") is not None, Severity.ERROR, "differential_missing",
                    "StructureDefinition has no differential section.", "differential section present")
        items.check(document.child("snapshot") is None, Severity.WARN, "snapshot_present",
                    "StructureDefinition contains a snapshot section; only the differential should be maintained.",
                    "snapshot section absent (OK)")

    @staticmethod
    def _check_element_ids(document: QueryNode, items: ItemCollector) -> None:
        elements = document.find_all("differential/element")
        seen: set[str] = set()
        failed = False
        for element in elements:
            element_id = element.attr("id")
            if is_blank(element_id):
                items.error("element_id_missing", "Differential element without @id.")
                failed = True
            elif element_id in seen:
                items.error("element_id_duplicate", f"Duplicate element id '{element_id}'.", element_id)
                failed = True
            else:
                seen.add(element_id)
        if elements and not failed:
            items.success("element_id_missing",
                          f"all {len(elements)} element/@id attributes are present and unique (OK)")

    @staticmethod
    def _check_slice_cardinality(document: QueryNode, items: ItemCollector) -> None:
        try:
            bases = sliced_base_elements(document)
            groups = [(base, read_slices(document, base)) for base in bases]
        except ValueError as e:
            items.error("cardinality_unparsable", f"Element cardinality cannot be parsed: {e}")
            return
        for base, slices in groups:
            for finding in check_slice_bounds(base, slices):
                items.add(finding.severity, finding.kind, finding.message, base.element_id)
