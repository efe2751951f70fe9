"""Known code systems and codes for one validation run."""

import logging
from collections.abc import Iterable

from .query import QueryNode, is_blank

logger = logging.getLogger(__name__)

READ_ACCESS_TAG = "http://dsf.dev/fhir/CodeSystem/read-access-tag"
PROCESS_AUTHORIZATION = "http://dsf.dev/fhir/CodeSystem/process-authorization"
PRACTITIONER_ROLE = "http://dsf.dev/fhir/CodeSystem/practitioner-role"
BPMN_MESSAGE = "http://dsf.dev/fhir/CodeSystem/bpmn-message"
BPMN_TASK_PROFILE = "http://dsf.dev/fhir/CodeSystem/bpmn-task-profile"
ORGANIZATION_ROLE = "http://dsf.dev/fhir/CodeSystem/organization-role"
RESOURCE_TYPE = "http://dsf.dev/fhir/CodeSystem/resource-type"
TASK_STATUS = "http://hl7.org/fhir/task-status"

DEFAULT_CODES: dict[str, frozenset[str]] = {
    READ_ACCESS_TAG: frozenset({"ALL", "LOCAL", "ORGANIZATION", "ROLE", "PRACTITIONER", "ROLE_PRACTITIONER"}),
    PROCESS_AUTHORIZATION: frozenset({
        "LOCAL_ORGANIZATION", "LOCAL_ORGANIZATION_PRACTITIONER", "REMOTE_ORGANIZATION",
        "LOCAL_ROLE", "LOCAL_ROLE_PRACTITIONER", "REMOTE_ROLE",
        "LOCAL_ALL", "LOCAL_ALL_PRACTITIONER", "REMOTE_ALL",
    }),
    PRACTITIONER_ROLE: frozenset({"DSF_ADMIN", "ORGANIZATION_USER"}),
    BPMN_MESSAGE: frozenset({"message-name", "business-key", "correlation-key"}),
    ORGANIZATION_ROLE: frozenset({
        "DIC", "DMS", "DTS", "COS", "CRR", "HRP", "TTP", "AMS", "UAC", "FTH", "TSP",
        "DATA_PROVIDER", "COORDINATOR",
    }),
    RESOURCE_TYPE: frozenset({"Task", "DocumentReference", "QuestionnaireResponse", "Binary"}),
    TASK_STATUS: frozenset({
        "draft", "requested", "received", "accepted", "rejected", "ready", "cancelled",
        "in-progress", "on-hold", "failed", "completed", "entered-in-error",
    }),
}

# Systems whose codes are not enumerable; any non-blank code is accepted
OPEN_SYSTEMS = frozenset({BPMN_TASK_PROFILE})


class CodeSystemRegistry:
    """Code membership lookups scoped to one run.

    Seeded with the DSF base code systems and extended with the concepts of
    the CodeSystem resources found in the validated project. Systems that
    are not registered are treated as external: their codes are never
    reported as unknown.
    """

    def __init__(self, seed: dict[str, Iterable[str]] | None = None):
        self._codes: dict[str, set[str]] = {}
        for system, codes in (DEFAULT_CODES if seed is None else seed).items():
            self.add_codes(system, codes)

    def add_codes(self, system: str, codes: Iterable[str]) -> None:
        self._codes.setdefault(system, set()).update(c for c in codes if not is_blank(c))

    def add_code_system(self, document: QueryNode) -> int:
        """Register the concepts of a CodeSystem resource. Returns the number of codes added."""
        url = document.value("url")
        if is_blank(url):
            return 0
        codes = [concept.value("code") for concept in document.iter("concept")]
        codes = [c for c in codes if not is_blank(c)]
        before = len(self._codes.get(url, ()))
        self.add_codes(url, codes)
        added = len(self._codes[url]) - before
        logger.debug(f"Registered {added} code(s) for {url}")
        return added

    def contains_system(self, system: str | None) -> bool:
        return system in self._codes or system in OPEN_SYSTEMS

    def is_known(self, system: str | None, code: str | None) -> bool:
        if is_blank(system) or is_blank(code):
            return False
        if system in OPEN_SYSTEMS:
            return True
        return code in self._codes.get(system, ())

    def is_unknown(self, system: str | None, code: str | None) -> bool:
        """True only for a registered system that lacks the code."""
        if is_blank(system) or not self.contains_system(system):
            return False
        return not self.is_known(system, code)

    def systems_containing(self, code: str) -> set[str]:
        return {system for system, codes in self._codes.items() if code in codes}

    def codes(self, system: str) -> frozenset[str]:
        return frozenset(self._codes.get(system, ()))
