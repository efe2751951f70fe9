"""Resource index and cross-reference resolver.

The index maps canonical URLs of the project's FHIR resources to the files
that declare them. It is built lazily, one directory scan per resource kind
and project root, and shared by every rule of a run through the
ReferenceCache.
"""

import logging
import zipfile
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..cache import ReferenceCache
from ..errors import DocumentParseError
from ..query import QueryNode, is_blank, parse_json, parse_xml
from .facts import canonical_url, message_names, strip_version, structure_definition_values

logger = logging.getLogger(__name__)

RESOURCE_FILE_SUFFIXES = (".xml", ".json")
EXTERNAL_FORM_PREFIX = "external:"

# Candidate locations of the "fhir/" resource folder, relative to the project root
DEFAULT_RESOURCE_ROOTS = (
    "src/main/resources",
    "target/classes",
    "build/resources/main",
    ".",
)


class ResourceKind(str, Enum):
    """FHIR resource types the resolver indexes."""
    ACTIVITY_DEFINITION = "ActivityDefinition"
    STRUCTURE_DEFINITION = "StructureDefinition"
    QUESTIONNAIRE = "Questionnaire"
    CODE_SYSTEM = "CodeSystem"
    VALUE_SET = "ValueSet"
    TASK = "Task"


@dataclass(frozen=True)
class ResourceEntry:
    """One indexed resource document."""
    kind: ResourceKind
    url: str | None
    version: str | None
    source: str
    path: Path | None = None
    document: QueryNode | None = field(default=None, compare=False, repr=False)

    @property
    def canonical(self) -> str | None:
        if self.url and self.version:
            return f"{self.url}|{self.version}"
        return self.url


@dataclass
class KindIndex:
    """Index of one resource kind."""
    entries: list[ResourceEntry] = field(default_factory=list)
    by_url: dict[str, ResourceEntry] = field(default_factory=dict)
    by_canonical: dict[str, ResourceEntry] = field(default_factory=dict)
    duplicates: dict[str, list[ResourceEntry]] = field(default_factory=dict)


def find_resource_roots(project_root: Path) -> list[Path]:
    """First candidate directory below the project root that contains ``fhir/``."""
    for candidate in DEFAULT_RESOURCE_ROOTS:
        root = (project_root / candidate).resolve()
        if (root / "fhir").is_dir():
            return [root]
    return []


class ResourceIndex:
    """Lazily built per-kind index of FHIR resources under a project root."""

    def __init__(self, project_root: Path, resource_roots: list[Path] | None = None,
                 include_jars: bool = True, cache: ReferenceCache | None = None):
        self.project_root = Path(project_root).resolve()
        self.resource_roots = resource_roots if resource_roots is not None else find_resource_roots(self.project_root)
        self.include_jars = include_jars
        self.cache = cache if cache is not None else ReferenceCache()
        self.scan_counts: dict[ResourceKind, int] = {}

    @property
    def root_identity(self) -> str:
        return str(self.project_root)

    def kind_index(self, kind: ResourceKind) -> KindIndex:
        return self.cache.get_or_compute(("index", kind, self.root_identity), lambda: self._build(kind))

    def entries(self, kind: ResourceKind) -> list[ResourceEntry]:
        return list(self.kind_index(kind).entries)

    def duplicates(self, kind: ResourceKind) -> dict[str, list[ResourceEntry]]:
        """Later files repeating an already indexed url and version, by URL."""
        return {url: list(dups) for url, dups in self.kind_index(kind).duplicates.items()}

    def lookup(self, kind: ResourceKind, identifier: str | None, any_version: bool = True) -> ResourceEntry | None:
        """Find a resource by canonical URL.

        With ``any_version`` a ``|version`` suffix of the identifier is
        ignored; otherwise an identifier carrying a version must match
        ``url|version`` exactly.
        """
        if is_blank(identifier):
            return None
        index = self.kind_index(kind)
        identifier = identifier.strip()
        if any_version or "|" not in identifier:
            return index.by_url.get(strip_version(identifier))
        return index.by_canonical.get(identifier)

    def _build(self, kind: ResourceKind) -> KindIndex:
        self.scan_counts[kind] = self.scan_counts.get(kind, 0) + 1
        index = KindIndex()
        for source, path, load in self._candidates(kind):
            try:
                document = load()
            except DocumentParseError as e:
                logger.debug(f"Skipping unparsable resource {source}: {e.reason}")
                continue
            if document.name != kind.value:
                continue
            url = canonical_url(document)
            version = document.value("version")
            entry = ResourceEntry(kind, url, None if is_blank(version) else version.strip(), source, path, document)
            index.entries.append(entry)
            if url is None:
                continue
            first = index.by_canonical.setdefault(entry.canonical, entry)
            if first is not entry:
                logger.info(f"Duplicate {kind.value} '{entry.canonical}' in {source}; keeping {first.source}")
                index.duplicates.setdefault(url, []).append(entry)
            index.by_url.setdefault(url, entry)
        logger.debug(f"Indexed {len(index.entries)} {kind.value} resource(s) under {self.project_root}")
        return index

    def _candidates(self, kind: ResourceKind) -> list[tuple[str, Path | None, Callable[[], QueryNode]]]:
        candidates = []
        for root in self.resource_roots:
            directory = Path(root) / "fhir" / kind.value
            if not directory.is_dir():
                continue
            for path in sorted(directory.rglob("*")):
                if path.is_file() and path.suffix.lower() in RESOURCE_FILE_SUFFIXES:
                    candidates.append((str(path), path, _file_loader(path)))
        if self.include_jars:
            for jar in sorted(self.project_root.glob("*.jar")):
                candidates.extend(_jar_candidates(jar, kind))
        return candidates


def _parse(content: bytes, name: str) -> QueryNode:
    if name.lower().endswith(".json"):
        return parse_json(content, name)
    return parse_xml(content, name)


def _file_loader(path: Path) -> Callable[[], QueryNode]:
    def load() -> QueryNode:
        try:
            return _parse(path.read_bytes(), str(path))
        except OSError as e:
            raise DocumentParseError(str(path), str(e)) from e
    return load


def _jar_candidates(jar: Path, kind: ResourceKind) -> list[tuple[str, None, Callable[[], QueryNode]]]:
    prefix = f"fhir/{kind.value}/"
    try:
        with zipfile.ZipFile(jar) as archive:
            names = sorted(n for n in archive.namelist()
                           if n.startswith(prefix) and n.lower().endswith(RESOURCE_FILE_SUFFIXES))
    except (OSError, zipfile.BadZipFile) as e:
        logger.warning(f"Cannot read resources from {jar}: {e}")
        return []

    def loader(entry_name: str) -> Callable[[], QueryNode]:
        def load() -> QueryNode:
            source = f"{jar}!/{entry_name}"
            try:
                with zipfile.ZipFile(jar) as archive:
                    return _parse(archive.read(entry_name), source)
            except (OSError, KeyError, zipfile.BadZipFile) as e:
                raise DocumentParseError(source, str(e)) from e
        return load

    return [(f"{jar}!/{name}", None, loader(name)) for name in names]


class CrossReferenceResolver:
    """Answers "does resource K with identifier I exist" style questions.

    Every answer is memoized in the shared ReferenceCache under
    (query, kind, identifier, project root). Lookups never raise; a failure
    is logged and treated as "not found".
    """

    def __init__(self, index: ResourceIndex):
        self.index = index
        self.cache = index.cache

    @property
    def project_root(self) -> Path:
        return self.index.project_root

    def _memo(self, query: str, kind: ResourceKind, identifier: str | None,
              compute: Callable[[], ResourceEntry | None]) -> ResourceEntry | None:
        if is_blank(identifier):
            return None
        key = (query, kind, identifier.strip(), self.index.root_identity)
        try:
            return self.cache.get_or_compute(key, compute)
        except Exception as e:
            logger.warning(f"Lookup of {kind.value} '{identifier}' failed: {e}")
            return None

    def locate(self, kind: ResourceKind, identifier: str | None, any_version: bool = True) -> ResourceEntry | None:
        query = "locate" if any_version else "locate-exact"
        return self._memo(query, kind, identifier, lambda: self.index.lookup(kind, identifier, any_version))

    def exists(self, kind: ResourceKind, identifier: str | None, any_version: bool = True) -> bool:
        return self.locate(kind, identifier, any_version) is not None

    def duplicates(self, kind: ResourceKind) -> dict[str, list[ResourceEntry]]:
        return self.index.duplicates(kind)

    def activity_definition_for(self, canonical: str | None) -> ResourceEntry | None:
        """ActivityDefinition whose url equals the canonical without version."""
        return self.locate(ResourceKind.ACTIVITY_DEFINITION, canonical)

    def activity_definition_with_message(self, message_name: str | None) -> ResourceEntry | None:
        """First ActivityDefinition declaring the message name."""
        kind = ResourceKind.ACTIVITY_DEFINITION

        def compute() -> ResourceEntry | None:
            name = message_name.strip()
            return next((e for e in self.index.entries(kind) if name in message_names(e.document)), None)

        return self._memo("message-name", kind, message_name, compute)

    def structure_definition_containing(self, value: str | None) -> ResourceEntry | None:
        """First StructureDefinition whose url or a fixed/value string equals value."""
        kind = ResourceKind.STRUCTURE_DEFINITION

        def compute() -> ResourceEntry | None:
            wanted = strip_version(value)
            return next((e for e in self.index.entries(kind)
                         if wanted in structure_definition_values(e.document)), None)

        return self._memo("contains", kind, value, compute)

    def structure_definition_for(self, profile: str | None) -> ResourceEntry | None:
        """StructureDefinition for a profile URL, falling back to a value match."""
        return (self.locate(ResourceKind.STRUCTURE_DEFINITION, profile)
                or self.structure_definition_containing(profile))

    def questionnaire_for(self, form_key: str | None) -> ResourceEntry | None:
        """Questionnaire for a user task formKey, with or without the ``external:`` prefix."""
        if form_key is not None and form_key.startswith(EXTERNAL_FORM_PREFIX):
            form_key = form_key[len(EXTERNAL_FORM_PREFIX):]
        return self.locate(ResourceKind.QUESTIONNAIRE, form_key)
