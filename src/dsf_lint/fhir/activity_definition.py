"""ActivityDefinition rules: process url, profile and process authorization."""

import re

from ..codes import PROCESS_AUTHORIZATION, READ_ACCESS_TAG
from ..context import ValidationContext
from ..query import QueryNode, is_blank
from ..validation import ItemCollector, Severity
from .base import FhirResourceRule, check_status_unknown

ACTIVITY_DEFINITION_PROFILE = "http://dsf.dev/fhir/StructureDefinition/activity-definition"
PROCESS_AUTHORIZATION_EXTENSION = "http://dsf.dev/fhir/StructureDefinition/extension-process-authorization"

PROCESS_URL_PATTERN = re.compile(
    r"^http[s]{0,1}://(?P<domain>(?:(?:[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9])\.)+(?:[a-zA-Z0-9]{1,63}))"
    r"/bpe/Process/(?P<name>[a-zA-Z0-9-]+)$"
)


class ActivityDefinitionRule(FhirResourceRule):
    """Checks the ActivityDefinition that publishes a process."""

    @property
    def resource_type(self) -> str:
        return "ActivityDefinition"

    def validate(self, document: QueryNode, context: ValidationContext, items: ItemCollector) -> None:
        self._check_url(document, items)
        check_status_unknown(document, items, "ActivityDefinition")
        self._check_kind(document, items)
        self._check_profile(document, items)
        self._check_read_access_tag(document, items)
        self._check_authorizations(document, context, items)

    @staticmethod
    def _check_url(document: QueryNode, items: ItemCollector) -> None:
        url = document.value("url")
        if is_blank(url):
            items.error("url_missing", "ActivityDefinition is missing <url> or it is empty.")
            return
        items.success("url_missing", f"Found <url>: '{url}'.")
        items.check(
            PROCESS_URL_PATTERN.match(url) is not None, Severity.ERROR, "activity_definition_url_pattern",
            f"ActivityDefinition URL does not match required pattern. Expected format: "
            f"http[s]://domain/bpe/Process/processName (e.g., http://dsf.dev/bpe/Process/test). Found: '{url}'",
            "ActivityDefinition URL pattern is valid.",
        )

    @staticmethod
    def _check_kind(document: QueryNode, items: ItemCollector) -> None:
        kind = document.value("kind")
        if is_blank(kind):
            items.error("kind_missing", "ActivityDefinition is missing <kind> or it is empty.")
        else:
            items.check(kind == "Task", Severity.ERROR, "kind_not_task",
                        f"<kind> must be 'Task' (found '{kind}').", "<kind> is 'Task'.")

    @staticmethod
    def _check_profile(document: QueryNode, items: ItemCollector) -> None:
        profile = document.value("meta/profile")
        if is_blank(profile):
            items.warn("activity_definition_profile",
                       f"ActivityDefinition is missing <meta><profile> with value '{ACTIVITY_DEFINITION_PROFILE}'.")
        elif not profile.startswith(ACTIVITY_DEFINITION_PROFILE):
            items.warn("activity_definition_profile",
                       f"ActivityDefinition <meta><profile> should be '{ACTIVITY_DEFINITION_PROFILE}' "
                       f"(found '{profile}').")
        elif "|" in profile:
            items.error("activity_definition_profile_version",
                        f"ActivityDefinition profile must not contain a version number (found '{profile}'). "
                        f"Use '{ACTIVITY_DEFINITION_PROFILE}' without version suffix.")
        else:
            items.success("activity_definition_profile",
                          f"Profile '{ACTIVITY_DEFINITION_PROFILE}' is correctly specified without version.")

    @staticmethod
    def _check_read_access_tag(document: QueryNode, items: ItemCollector) -> None:
        # Only the first tag is the read-access tag of an ActivityDefinition
        tag = document.find("meta/tag")
        system = tag.value("system") if tag is not None else None
        code = tag.value("code") if tag is not None else None
        if is_blank(system) or is_blank(code):
            items.error("read_access_tag_missing", "Missing read-access tag (system + code).")
        else:
            items.check(
                system == READ_ACCESS_TAG and code == "ALL", Severity.ERROR, "read_access_tag_invalid",
                f"Read-access tag must be system='{READ_ACCESS_TAG}', code='ALL' "
                f"(found system='{system}', code='{code}').",
                f"Read-access tag ok (system '{system}', code '{code}').",
            )

    def _check_authorizations(self, document: QueryNode, context: ValidationContext,
                              items: ItemCollector) -> None:
        extensions = document.find_all(f"extension[@url='{PROCESS_AUTHORIZATION_EXTENSION}']")
        if not extensions:
            items.error("process_authorization_missing", "No extension-process-authorization found.")
            return
        items.success("process_authorization_missing",
                      f"Found extension-process-authorization ({len(extensions)}).")

        for extension in extensions:
            for role in ("requester", "recipient"):
                entries = extension.find_all(f"extension[@url='{role}']")
                if not entries:
                    items.error(f"authorization_{role}_missing",
                                f"No <extension url='{role}'> found in process-authorization.")
                    continue
                items.success(f"authorization_{role}_missing", f"Found <extension url='{role}'> ({len(entries)}).")
                for entry in entries:
                    self._check_authorization_coding(entry, role, context, items)

    @staticmethod
    def _check_authorization_coding(entry: QueryNode, role: str, context: ValidationContext,
                                    items: ItemCollector) -> None:
        kind = f"authorization_{role}_invalid"
        system = entry.value("valueCoding/system")
        code = entry.value("valueCoding/code")
        if is_blank(system) or is_blank(code):
            items.error(kind, f"Missing <system> or <code> in '{role}' valueCoding.")
        elif system != PROCESS_AUTHORIZATION:
            items.error(kind, f"'{role}' valueCoding.system must be '{PROCESS_AUTHORIZATION}' (found '{system}').")
        elif context.codes.is_unknown(PROCESS_AUTHORIZATION, code):
            items.error(kind, f"'{role}' code '{code}' is not known in CodeSystem '{PROCESS_AUTHORIZATION}'.")
        else:
            items.success(kind, f"'{role}' coding system and code are valid ({code}).")
