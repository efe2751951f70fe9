"""Base class and shared checks for FHIR resource rules."""

from abc import ABC, abstractmethod
from pathlib import PurePath

from ..codes import READ_ACCESS_TAG
from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..validation import ItemCollector, Severity

VERSION_PLACEHOLDER = "#{version}"
DATE_PLACEHOLDER = "#{date}"
ORGANIZATION_PLACEHOLDER = "#{organization}"


class FhirResourceRule(ABC):
    """Rule set for one FHIR resource type."""

    @property
    @abstractmethod
    def resource_type(self) -> str:
        """Local name of the resource root element, e.g. ``Task``."""
        pass

    def can_handle(self, document: QueryNode) -> bool:
        return document.name == self.resource_type

    def reference(self, document: QueryNode, source: str | None) -> str | None:
        """Identifier used in items: the canonical url, else the file name."""
        url = document.value("url")
        if not is_blank(url):
            return url.strip()
        return PurePath(source).name if source else None

    @abstractmethod
    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        """Execute all checks of this rule set.

        Args:
            document: Parsed resource (root element)
            context: Run-wide validation context
            items: Collector receiving one item per evaluated check
        """
        pass


def read_access_tags(document: QueryNode) -> list[tuple[str | None, str | None]]:
    """(system, code) of every ``meta.tag``."""
    return [(tag.value("system"), tag.value("code")) for tag in document.find_all("meta/tag")]


def has_read_access_tag(document: QueryNode, codes: set[str] | frozenset[str]) -> bool:
    return any(system == READ_ACCESS_TAG and code in codes for system, code in read_access_tags(document))


def check_status_unknown(document: QueryNode, items: ItemCollector, label: str) -> None:
    status = document.value("status")
    items.check(
        status == "unknown", Severity.ERROR, "status_not_unknown",
        f"{label} <status> must be 'unknown' (found '{status}').",
        "<status> is 'unknown'.",
    )


def check_present(document: QueryNode, items: ItemCollector, element: str, label: str,
                  severity: Severity = Severity.ERROR) -> bool:
    value = document.value(element)
    return items.check(
        not is_blank(value), severity, f"{element}_missing",
        f"{label} is missing <{element}> or it is empty.",
        f"<{element}> present: '{value}'",
    )


def check_placeholder(document: QueryNode, items: ItemCollector, element: str, placeholder: str,
                      label: str, severity: Severity = Severity.ERROR, optional: bool = False) -> None:
    """The element must equal the placeholder; with ``optional`` a missing element passes."""
    value = document.value(element)
    ok = value == placeholder or (optional and value is None)
    items.check(
        ok, severity, f"{element}_no_placeholder",
        f"{label} <{element}> must be '{placeholder}' (found '{value}').",
        f"<{element}> placeholder '{placeholder}' present.",
    )
