"""FHIR resource rule sets and their router."""

from .activity_definition import ActivityDefinitionRule
from .base import FhirResourceRule
from .code_system import CodeSystemRule
from .questionnaire import QuestionnaireRule
from .router import FhirRouter
from .structure_definition import StructureDefinitionRule
from .task import TaskRule
from .value_set import ValueSetRule

__all__ = [
    "ActivityDefinitionRule",
    "CodeSystemRule",
    "FhirResourceRule",
    "FhirRouter",
    "QuestionnaireRule",
    "StructureDefinitionRule",
    "TaskRule",
    "ValueSetRule",
]
