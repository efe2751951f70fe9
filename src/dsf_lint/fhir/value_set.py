"""ValueSet rules: read access, metadata and compose.include codes."""

from ..codes import ORGANIZATION_ROLE
from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..validation import ItemCollector, Severity
from .base import (
    DATE_PLACEHOLDER,
    VERSION_PLACEHOLDER,
    FhirResourceRule,
    check_placeholder,
    check_present,
    has_read_access_tag,
)

PARENT_ORGANIZATION_ROLE_EXTENSION = (
    "http://dsf.dev/fhir/StructureDefinition/extension-read-access-parent-organization-role"
)


class ValueSetRule(FhirResourceRule):

    @property
    def resource_type(self) -> str:
        return "ValueSet"

    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        items.check(
            has_read_access_tag(document, {"ALL", "LOCAL"}), Severity.ERROR, "read_access_tag_missing",
            "meta.tag must contain at least one read-access-tag with code 'ALL' or 'LOCAL'",
            "meta.tag read-access-tag contains ALL or LOCAL.",
        )
        self._check_organization_roles(document, context, items)

        for element in ("url", "name", "title", "publisher"):
            check_present(document, items, element, "ValueSet")
        check_present(document, items, "description", "ValueSet", Severity.WARN)
        check_placeholder(document, items, "version", VERSION_PLACEHOLDER, "ValueSet")
        check_placeholder(document, items, "date", DATE_PLACEHOLDER, "ValueSet")

        self._check_includes(document, context, items)

    @staticmethod
    def _check_organization_roles(document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        path = (f"meta/tag/extension[@url='{PARENT_ORGANIZATION_ROLE_EXTENSION}']"
                f"/extension[@url='organization-role']/valueCoding/code")
        for code in document.values(path):
            items.check(
                not context.codes.is_unknown(ORGANIZATION_ROLE, code), Severity.ERROR,
                "organization_role_code_invalid",
                f"Invalid organization-role code '{code}'",
                f"meta.tag parent-organization-role code '{code}' OK.",
            )

    def _check_includes(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        includes = document.find_all("compose/include")
        if not includes:
            items.error("compose_include_missing", "ValueSet has no compose.include.")
            return

        for include in includes:
            system = include.value("system")
            if is_blank(system):
                items.error("include_system_missing", "compose.include without system")
                continue
            items.success("include_system_missing", f"include.system = '{system}'")

            version = include.value("version")
            items.check(version == VERSION_PLACEHOLDER, Severity.WARN, "include_version_no_placeholder",
                        f"include.version should be '{VERSION_PLACEHOLDER}' (found '{version}')",
                        "include.version placeholder OK")

            seen: set[str] = set()
            for concept in include.find_all("concept"):
                code = concept.value("code")
                if is_blank(code):
                    items.error("include_concept_code_missing", "include.concept without code")
                    continue
                if code in seen:
                    items.warn("include_concept_code_duplicate", f"duplicate code '{code}' in the same include")
                seen.add(code)
                self._check_code(system, code, context, items)

    @staticmethod
    def _check_code(system: str, code: str, context: ValidationContext, items: ItemCollector) -> None:
        if context.codes.is_known(system, code):
            items.success("include_concept_code_unknown", f"concept.code '{code}' is known in '{system}'.")
            return
        hits = context.codes.systems_containing(code)
        if hits:
            items.error("include_concept_wrong_system",
                        f"code '{code}' exists in system(s) {sorted(hits)} but ValueSet references '{system}'.")
        else:
            items.error("include_concept_code_unknown", f"unknown code '{code}' in system '{system}'")
