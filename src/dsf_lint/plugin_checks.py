"""Plugin-level checks that look at all files of a plugin together.

A plugin should declare process models and FHIR resources, and every file
below ``bpe/`` and ``fhir/`` should belong to a process:

- a BPMN file when an ActivityDefinition publishes one of its processes
- an ActivityDefinition or Task when its process is modelled in the plugin
- any other resource when another file of the plugin mentions its canonical URL
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .bpmn import ProcessGraph
from .errors import DocumentParseError
from .fhir.activity_definition import PROCESS_URL_PATTERN
from .query import QueryNode, load_document
from .resolver import strip_version
from .resolver.facts import canonical_url
from .resolver.index import EXTERNAL_FORM_PREFIX
from .validation import ItemCollector, Severity, ValidationItem

logger = logging.getLogger(__name__)

BPMN_SUFFIX = ".bpmn"


def process_id_for_url(url: str | None) -> str | None:
    """Process id published by an ActivityDefinition url.

    ``http://dsf.dev/bpe/Process/ping`` publishes ``dsfdev_ping``.
    """
    match = PROCESS_URL_PATTERN.match(strip_version(url) or "")
    if match is None:
        return None
    return f"{match.group('domain').replace('.', '')}_{match.group('name')}"


def mentioned_values(document: QueryNode) -> set[str]:
    """Attribute values and texts of a document, without ``|version`` and ``external:`` parts."""
    values = set()
    for node in document.iter():
        for value in [*node.element.attrib.values(), node.element.text or ""]:
            value = value.strip()
            if value.startswith(EXTERNAL_FORM_PREFIX):
                value = value[len(EXTERNAL_FORM_PREFIX):]
            if value:
                values.add(strip_version(value))
    return values


@dataclass(frozen=True)
class FileFacts:
    """What one plugin file publishes and mentions."""
    path: Path
    source: str
    resource_type: str | None
    url: str | None
    process_ids: frozenset[str]
    instantiates: str | None
    values: frozenset[str]

    @property
    def is_bpmn(self) -> bool:
        return self.resource_type is None


def check_plugin_contents(project) -> list[ValidationItem]:
    """WARN when the plugin has no process models or no FHIR resources."""
    items = ItemCollector(reference=project.name)
    items.check(
        bool(project.bpmn_files), Severity.WARN, "plugin_bpmn_missing",
        f"No BPMN process models found in plugin '{project.name}'.",
        f"Plugin '{project.name}' contains {len(project.bpmn_files)} BPMN process model(s).",
    )
    items.check(
        bool(project.fhir_files), Severity.WARN, "plugin_fhir_missing",
        f"No FHIR resources found in plugin '{project.name}'.",
        f"Plugin '{project.name}' contains {len(project.fhir_files)} FHIR resource(s).",
    )
    return items.items


def check_unreferenced_files(project) -> list[ValidationItem]:
    """One WARN per file that no process or resource refers to, or a single SUCCESS.

    Unparsable files are left out; they are reported by the file validation.
    """
    facts = [fact for fact in (read_facts(path, project) for path in project.files) if fact is not None]
    process_ids = {process_id for fact in facts for process_id in fact.process_ids}
    published = {process_id_for_url(fact.url) for fact in facts if fact.resource_type == "ActivityDefinition"}

    unreferenced = [fact for fact in facts if not _is_referenced(fact, facts, process_ids, published)]
    logger.info(f"Reference analysis of '{project.name}': {len(facts)} file(s) found, "
                f"{len(unreferenced)} unreferenced")

    if not unreferenced:
        items = ItemCollector(reference=project.name)
        items.success("file_unreferenced",
                      f"All BPMN and FHIR files of plugin '{project.name}' are referenced by a process or resource.")
        return items.items

    found: list[ValidationItem] = []
    for fact in unreferenced:
        items = ItemCollector(file=fact.source, reference=fact.url or fact.path.name, items=found)
        if fact.is_bpmn:
            items.warn("file_unreferenced",
                       f"BPMN file '{fact.path.name}' has no process published by an ActivityDefinition.")
        else:
            items.warn("file_unreferenced",
                       f"{fact.resource_type} '{fact.url or fact.path.name}' is not referenced "
                       f"by any process or resource.")
    return found


def _is_referenced(fact: FileFacts, facts: list[FileFacts], process_ids: set[str], published: set[str]) -> bool:
    if fact.is_bpmn:
        return not fact.process_ids.isdisjoint(published)
    if fact.resource_type == "ActivityDefinition":
        return process_id_for_url(fact.url) in process_ids
    if fact.resource_type == "Task":
        return process_id_for_url(fact.instantiates) in process_ids
    if fact.url is None:
        return False
    return any(fact.url in other.values for other in facts if other is not fact)


def read_facts(path: Path, project) -> FileFacts | None:
    source = project.relative(path)
    try:
        document = load_document(path)
    except DocumentParseError as e:
        logger.debug(f"Skipping unparsable file {source} in reference analysis: {e.reason}")
        return None

    if path.suffix.lower() == BPMN_SUFFIX:
        graph = ProcessGraph.from_document(document)
        process_ids = frozenset(process.id for process in graph.processes if process.id)
        return FileFacts(path, source, None, None, process_ids, None, frozenset(mentioned_values(document)))
    return FileFacts(path, source, document.name, canonical_url(document), frozenset(),
                     document.value("instantiatesCanonical"), frozenset(mentioned_values(document)))
