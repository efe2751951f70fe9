"""Questionnaire rules for user task forms."""

import re

from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..validation import ItemCollector, Severity
from .base import (
    DATE_PLACEHOLDER,
    VERSION_PLACEHOLDER,
    FhirResourceRule,
    check_placeholder,
    check_status_unknown,
    has_read_access_tag,
)

QUESTIONNAIRE_PROFILE = "http://dsf.dev/fhir/StructureDefinition/questionnaire"
PROFILE_PATTERN = re.compile(rf"^{re.escape(QUESTIONNAIRE_PROFILE)}\|\d+\.\d+\.\d+$")
LINK_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

READ_ACCESS_CODES = frozenset({"ALL", "LOCAL", "ORGANIZATION", "ROLE"})

# Items every DSF user task form must carry
MANDATORY_ITEMS = {"user-task-id": "string"}


def _primitive(item: QueryNode, name: str) -> str | None:
    """Child ``<name value=".."/>`` or, failing that, the attribute of the same name."""
    value = item.value(name)
    return item.attr(name) if is_blank(value) else value


class QuestionnaireRule(FhirResourceRule):

    @property
    def resource_type(self) -> str:
        return "Questionnaire"

    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        profile = document.value("meta/profile")
        if is_blank(profile):
            items.error("questionnaire_profile_missing", "Questionnaire is missing meta.profile.")
        else:
            items.check(PROFILE_PATTERN.match(profile) is not None, Severity.ERROR, "questionnaire_profile_invalid",
                        f"Questionnaire has invalid meta.profile: {profile}", "meta.profile present and valid")

        items.check(has_read_access_tag(document, READ_ACCESS_CODES), Severity.ERROR, "read_access_tag_missing",
                    "Questionnaire is missing valid read-access tag.", "read-access tag present")
        check_status_unknown(document, items, "Questionnaire")
        check_placeholder(document, items, "version", VERSION_PLACEHOLDER, "Questionnaire")
        check_placeholder(document, items, "date", DATE_PLACEHOLDER, "Questionnaire")

        self._check_items(document, items)

    @staticmethod
    def _check_items(document: QueryNode, items: ItemCollector) -> None:
        entries = document.find_all("item")
        if not entries:
            items.error("questionnaire_item_missing", "Questionnaire must contain at least one item.")
            return

        link_ids: set[str] = set()
        for entry in entries:
            link_id = _primitive(entry, "linkId")
            item_type = _primitive(entry, "type")
            if is_blank(link_id):
                items.error("questionnaire_item_link_id_missing", "Questionnaire item is missing linkId.")
                continue
            if is_blank(item_type):
                items.error("questionnaire_item_type_missing", f"Questionnaire item '{link_id}' is missing type.")
                continue
            if is_blank(_primitive(entry, "text")):
                items.info("questionnaire_item_text_missing", f"Questionnaire item '{link_id}' is missing text.")

            if link_id in link_ids:
                items.error("questionnaire_link_id_duplicate", f"Questionnaire has duplicate linkId: {link_id}")
            link_ids.add(link_id)

            if not LINK_ID_PATTERN.match(link_id):
                items.warn("questionnaire_link_id_unusual",
                           f"Questionnaire linkId '{link_id}' does not match recommended pattern "
                           f"[a-z0-9]+(-[a-z0-9]+)*.")

            expected_type = MANDATORY_ITEMS.get(link_id)
            if expected_type is None:
                items.success("questionnaire_item", f"item '{link_id}' looks good")
            elif item_type != expected_type:
                items.error("questionnaire_mandatory_item_type",
                            f"Mandatory item '{link_id}' must be of type '{expected_type}' (found '{item_type}').")
            elif _primitive(entry, "required") != "true":
                items.error("questionnaire_mandatory_item_not_required",
                            f"Mandatory item '{link_id}' must have required='true'.")
            else:
                items.success("questionnaire_mandatory_item", f"mandatory item '{link_id}' valid")

        for link_id in MANDATORY_ITEMS:
            items.check(link_id in link_ids, Severity.ERROR, "questionnaire_mandatory_item_missing",
                        f"Mandatory item '{link_id}' is missing.", f"mandatory item '{link_id}' present")
