"""Exception types raised by dsf-lint.

Defects in validated content never surface as exceptions; they become
validation items. The types below cover parse failures at the file boundary
and broken invariants of the engine itself.
"""


class DsfLintError(Exception):
    """Base class for dsf-lint errors."""


class DocumentParseError(DsfLintError):
    """A BPMN or FHIR file could not be parsed into a document tree."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot parse {source}: {reason}")


class ProjectRootError(DsfLintError):
    """The project root required by the resolvers is missing."""


class AmbiguousRuleError(DsfLintError):
    """More than one rule set claims the same resource document."""


class ReportError(DsfLintError):
    """A generated report does not conform to the report schema."""
