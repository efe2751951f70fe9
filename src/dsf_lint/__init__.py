"""dsf-lint - Validation engine for DSF process plugins.

dsf-lint checks the BPMN process models and FHIR resources of a DSF process
plugin: element configuration, implementation classes, cross references
between the two document families and profile cardinality.
"""

__version__ = "0.1.0"
__author__ = "dsf-lint contributors"
__description__ = "Validation engine for DSF process plugin BPMN and FHIR resources"

from dsf_lint.config import LintConfig
from dsf_lint.validation import Severity, ValidationItem, ValidationResult

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "LintConfig",
    "Severity",
    "ValidationItem",
    "ValidationResult",
]
