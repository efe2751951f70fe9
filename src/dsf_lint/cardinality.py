"""Slice cardinality rules for FHIR profiles and their instances.

A base element ``Task.input`` declares ``min``/``max``; its slices
``Task.input:message-name`` etc. declare their own bounds. The rules follow
the FHIR profiling guidance on slice cardinality:

* a slice without ``max`` inherits the base ``max``
* the sum of slice minimums must not exceed the base ``max`` (ERROR)
* the sum of slice minimums should not exceed the base ``min`` (WARN)
* no single slice ``max`` may exceed the base ``max`` (ERROR)

``UNBOUNDED`` (``*``) is a sentinel compared by identity. A bound the base
element does not declare disables the corresponding check.
"""

import logging
from dataclasses import dataclass

from .query import QueryNode, is_blank
from .validation import Severity

logger = logging.getLogger(__name__)


class _Unbounded:
    """The ``*`` upper bound."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNBOUNDED"

    def __str__(self) -> str:
        return "*"


UNBOUNDED = _Unbounded()

Max = int | _Unbounded


def parse_min(raw: str | None) -> int | None:
    if is_blank(raw):
        return None
    return int(raw.strip())


def parse_max(raw: str | None) -> Max | None:
    if is_blank(raw):
        return None
    raw = raw.strip()
    if raw == "*":
        return UNBOUNDED
    return int(raw)


def exceeds(value: Max, bound: Max) -> bool:
    """True if value is strictly greater than bound.

    An unbounded bound is never exceeded; an unbounded value exceeds every
    finite bound.
    """
    if bound is UNBOUNDED:
        return False
    if value is UNBOUNDED:
        return True
    return value > bound


@dataclass(frozen=True)
class ElementBounds:
    """Declared bounds of a base element; None means not declared."""
    element_id: str
    min: int | None = None
    max: Max | None = None


@dataclass(frozen=True)
class SliceCardinality:
    slice_name: str
    min: int
    max: Max | None


@dataclass(frozen=True)
class CardinalityFinding:
    """Outcome of one cardinality check."""
    severity: Severity
    kind: str
    message: str
    slice_name: str | None = None


def _element_nodes(structure_definition: QueryNode, section: str) -> list[QueryNode]:
    return structure_definition.find_all(f"{section}/element")


def read_element_bounds(structure_definition: QueryNode, element_id: str,
                        section: str = "differential") -> ElementBounds | None:
    """Bounds of the element with the given id, or None if it is not declared."""
    for element in _element_nodes(structure_definition, section):
        if element.attr("id") == element_id:
            return ElementBounds(element_id, parse_min(element.value("min")), parse_max(element.value("max")))
    return None


def read_slices(structure_definition: QueryNode, base: ElementBounds,
                section: str = "differential") -> list[SliceCardinality]:
    """Immediate slices of a base element in declaration order.

    Only ids of the form ``<base>:<name>`` count; child paths of a slice
    (``<base>:<name>.value[x]``) and re-slices are excluded. Slice min
    defaults to 0 and slice max to the base max.
    """
    prefix = base.element_id + ":"
    slices = []
    for element in _element_nodes(structure_definition, section):
        element_id = element.attr("id") or ""
        if not element_id.startswith(prefix):
            continue
        name = element_id[len(prefix):]
        if not name or "." in name or ":" in name or "/" in name:
            continue
        slice_min = parse_min(element.value("min"))
        slice_max = parse_max(element.value("max"))
        slices.append(SliceCardinality(
            slice_name=name,
            min=slice_min if slice_min is not None else 0,
            max=slice_max if slice_max is not None else base.max,
        ))
    return slices


def sliced_base_elements(structure_definition: QueryNode, section: str = "differential") -> list[ElementBounds]:
    """Base elements (ids without ':') that have at least one immediate slice."""
    nodes = _element_nodes(structure_definition, section)
    ids = [node.attr("id") or "" for node in nodes]
    bases = []
    for node, element_id in zip(nodes, ids):
        if not element_id or ":" in element_id:
            continue
        prefix = element_id + ":"
        if any(other.startswith(prefix) for other in ids):
            bases.append(ElementBounds(element_id, parse_min(node.value("min")), parse_max(node.value("max"))))
    return bases


def check_slice_bounds(base: ElementBounds, slices: list[SliceCardinality]) -> list[CardinalityFinding]:
    """Static checks of a profile's slice bounds against the base element."""
    if not slices:
        return []

    findings = []
    min_sum = sum(s.min for s in slices)

    if base.min is not None:
        if min_sum > base.min:
            findings.append(CardinalityFinding(
                Severity.WARN, "slice_min_sum_above_base_min",
                f"Sum of slice minimums ({min_sum}) for '{base.element_id}' exceeds base min "
                f"({base.min}); allowed, but only recommended up to the base min.",
            ))
        else:
            findings.append(CardinalityFinding(
                Severity.SUCCESS, "slice_min_sum_above_base_min",
                f"Sum of slice minimums ({min_sum}) for '{base.element_id}' within base min ({base.min}).",
            ))

    if base.max is None:
        return findings

    if base.max is UNBOUNDED:
        findings.append(CardinalityFinding(
            Severity.SUCCESS, "slice_max_within_base_max",
            f"Base max of '{base.element_id}' is unbounded; slice bounds cannot exceed it.",
        ))
        return findings

    for s in slices:
        if exceeds(s.max, base.max):
            findings.append(CardinalityFinding(
                Severity.ERROR, "slice_max_above_base_max",
                f"Slice '{s.slice_name}' max ({s.max}) exceeds base max ({base.max}) of '{base.element_id}'.",
                s.slice_name,
            ))
    if min_sum > base.max:
        findings.append(CardinalityFinding(
            Severity.ERROR, "slice_min_sum_above_base_max",
            f"Sum of slice minimums ({min_sum}) for '{base.element_id}' exceeds base max ({base.max}).",
        ))
    if not any(f.severity == Severity.ERROR for f in findings):
        findings.append(CardinalityFinding(
            Severity.SUCCESS, "slice_max_within_base_max",
            f"Slice bounds of '{base.element_id}' fit within base max ({base.max}).",
        ))
    return findings


def check_instance_counts(base: ElementBounds, slices: list[SliceCardinality],
                          total: int, slice_counts: dict[str, int]) -> list[CardinalityFinding]:
    """Compare occurrence counts of an instance document with profile bounds."""
    findings = []

    if base.min is not None and total < base.min:
        findings.append(CardinalityFinding(
            Severity.ERROR, "instance_count_below_min",
            f"{base.element_id} occurs {total} time(s), fewer than min {base.min}.",
        ))
    elif base.max is not None and exceeds(total, base.max):
        findings.append(CardinalityFinding(
            Severity.ERROR, "instance_count_above_max",
            f"{base.element_id} occurs {total} time(s), more than max {base.max}.",
        ))
    else:
        findings.append(CardinalityFinding(
            Severity.SUCCESS, "instance_count_within_bounds",
            f"{base.element_id} count {total} within "
            f"{base.min if base.min is not None else '-'}..{base.max if base.max is not None else '-'}.",
        ))

    for s in slices:
        count = slice_counts.get(s.slice_name, 0)
        if count < s.min:
            findings.append(CardinalityFinding(
                Severity.ERROR, "slice_count_below_min",
                f"Slice '{s.slice_name}' occurs {count} time(s), fewer than slice min {s.min}.",
                s.slice_name,
            ))
        elif s.max is not None and exceeds(count, s.max):
            findings.append(CardinalityFinding(
                Severity.ERROR, "slice_count_above_max",
                f"Slice '{s.slice_name}' occurs {count} time(s), more than slice max {s.max}.",
                s.slice_name,
            ))
        else:
            findings.append(CardinalityFinding(
                Severity.SUCCESS, "slice_count_within_bounds",
                f"Slice '{s.slice_name}' count {count} OK.",
                s.slice_name,
            ))
    return findings
