"""Result model shared by every rule set.

Each evaluated check appends exactly one ValidationItem, passing checks
included, so a result doubles as an audit trail. A run fails if and only if
at least one ERROR item exists.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Item severity, ordered ERROR > WARN > INFO > SUCCESS."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    SUCCESS = "success"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.SUCCESS: 0,
    Severity.INFO: 1,
    Severity.WARN: 2,
    Severity.ERROR: 3,
}


@dataclass(frozen=True)
class ValidationItem:
    """A single finding of one check."""
    severity: Severity
    kind: str
    message: str
    file: str | None = None
    element_id: str | None = None
    process_id: str | None = None
    reference: str | None = None

    def __str__(self) -> str:
        location = ""
        if self.file:
            location += f" in {self.file}"
        if self.process_id:
            location += f" (process {self.process_id})"
        if self.element_id:
            location += f" at {self.element_id}"
        elif self.reference:
            location += f" at {self.reference}"
        return f"[{self.severity.value.upper()}] {self.kind}: {self.message}{location}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "kind": self.kind,
            "message": self.message,
            "file": self.file,
            "elementId": self.element_id,
            "processId": self.process_id,
            "reference": self.reference,
        }


@dataclass
class ValidationResult:
    """Concatenation of items from any number of files."""
    items: list[ValidationItem] = field(default_factory=list)

    def add(self, item: ValidationItem) -> None:
        self.items.append(item)

    def extend(self, items: list[ValidationItem]) -> None:
        self.items.extend(items)

    @property
    def status(self) -> Severity:
        """Highest severity present; SUCCESS for an empty result."""
        return max((item.severity for item in self.items), key=lambda s: s.rank, default=Severity.SUCCESS)

    @property
    def passed(self) -> bool:
        return not any(item.severity == Severity.ERROR for item in self.items)

    @property
    def counters(self) -> dict[str, int]:
        counts = {severity.value: 0 for severity in Severity}
        for item in self.items:
            counts[item.severity.value] += 1
        return counts

    def exit_code(self, fail_on_warn: bool = False) -> int:
        """Exit code for CI: 0 = pass, 1 = at least one ERROR (or WARN if requested)."""
        if not self.passed:
            return 1
        if fail_on_warn and any(item.severity == Severity.WARN for item in self.items):
            return 1
        return 0

    def by_severity(self, *severities: Severity) -> list[ValidationItem]:
        return [item for item in self.items if item.severity in severities]

    def to_dict(self, include_success: bool = True) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "passed": self.passed,
            "counters": self.counters,
            "items": [
                item.to_dict()
                for item in self.items
                if include_success or item.severity != Severity.SUCCESS
            ],
        }


class ItemCollector:
    """Builds items for one file, appending them to a shared list.

    Rule code calls ``error``/``warn``/``info``/``success`` with a kind and
    message; file, process and reference are filled in from the collector.
    """

    def __init__(self, file: str | None = None, process_id: str | None = None,
                 reference: str | None = None, items: list[ValidationItem] | None = None):
        self.file = file
        self.process_id = process_id
        self.reference = reference
        self.items: list[ValidationItem] = items if items is not None else []

    def for_process(self, process_id: str | None) -> "ItemCollector":
        """Collector sharing the item list but tagging another process id."""
        return ItemCollector(self.file, process_id, self.reference, self.items)

    def add(self, severity: Severity, kind: str, message: str, element_id: str | None = None) -> ValidationItem:
        item = ValidationItem(severity, kind, message, self.file, element_id, self.process_id, self.reference)
        self.items.append(item)
        return item

    def error(self, kind: str, message: str, element_id: str | None = None) -> ValidationItem:
        return self.add(Severity.ERROR, kind, message, element_id)

    def warn(self, kind: str, message: str, element_id: str | None = None) -> ValidationItem:
        return self.add(Severity.WARN, kind, message, element_id)

    def info(self, kind: str, message: str, element_id: str | None = None) -> ValidationItem:
        return self.add(Severity.INFO, kind, message, element_id)

    def success(self, kind: str, message: str, element_id: str | None = None) -> ValidationItem:
        return self.add(Severity.SUCCESS, kind, message, element_id)

    def check(self, ok: bool, severity: Severity, kind: str, failure: str, passed: str,
              element_id: str | None = None) -> bool:
        """Emit SUCCESS when ok, otherwise an item of the given severity."""
        if ok:
            self.success(kind, passed, element_id)
        else:
            self.add(severity, kind, failure, element_id)
        return ok
