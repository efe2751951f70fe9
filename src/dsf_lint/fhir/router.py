"""Dispatch of FHIR resource documents to their rule sets."""

import logging
from pathlib import PurePath

from ..context import ValidationContext
from ..errors import AmbiguousRuleError
from ..query import QueryNode
from ..validation import ItemCollector, ValidationItem
from .activity_definition import ActivityDefinitionRule
from .base import FhirResourceRule
from .code_system import CodeSystemRule
from .questionnaire import QuestionnaireRule
from .structure_definition import StructureDefinitionRule
from .task import TaskRule
from .value_set import ValueSetRule

logger = logging.getLogger(__name__)


class FhirRouter:
    """Routes each resource to the one rule set that handles its type."""

    def __init__(self):
        self.rules: list[FhirResourceRule] = []

    def register(self, rule: FhirResourceRule) -> None:
        """Add a rule set.

        Raises:
            ValueError: If a rule for the same resource type is already registered
        """
        if any(existing.resource_type == rule.resource_type for existing in self.rules):
            raise ValueError(f"A rule for resource type '{rule.resource_type}' is already registered")
        self.rules.append(rule)

    def create_default_rules(self) -> None:
        self.register(ActivityDefinitionRule())
        self.register(TaskRule())
        self.register(ValueSetRule())
        self.register(CodeSystemRule())
        self.register(QuestionnaireRule())
        self.register(StructureDefinitionRule())

    @classmethod
    def with_default_rules(cls) -> "FhirRouter":
        router = cls()
        router.create_default_rules()
        return router

    def rule_for(self, document: QueryNode) -> FhirResourceRule | None:
        """The rule set claiming the document.

        Raises:
            AmbiguousRuleError: If more than one rule set claims it
        """
        matches = [rule for rule in self.rules if rule.can_handle(document)]
        if len(matches) > 1:
            names = ", ".join(type(rule).__name__ for rule in matches)
            raise AmbiguousRuleError(f"Resource '{document.name}' is claimed by several rules: {names}")
        return matches[0] if matches else None

    def route(self, document: QueryNode, context: ValidationContext, source: str | None = None) -> list[ValidationItem]:
        """Validate one resource document.

        Args:
            document: Parsed resource (root element)
            context: Run-wide validation context
            source: File name used in the produced items

        Returns:
            Items of every evaluated check
        """
        rule = self.rule_for(document)
        if rule is None:
            name = PurePath(source).name if source else None
            collector = ItemCollector(file=source, reference=name)
            collector.info("fhir_resource_unsupported",
                           f"No FHIR rule recognized resource type '{document.name}'.")
            logger.info(f"No FHIR rule recognized {source}")
            return collector.items

        collector = ItemCollector(file=source, reference=rule.reference(document, source))
        rule.validate(document, context, collector)
        logger.debug(f"Validated {rule.resource_type} {source}: {len(collector.items)} item(s)")
        return collector.items
