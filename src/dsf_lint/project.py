"""Project runner: discovers plugin files and validates them.

This is the parse boundary of the engine. A file that cannot be parsed
contributes a single ERROR item instead of its findings; every other file is
handed to the BPMN or FHIR router.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .bpmn import BpmnRouter, ProcessGraph
from .config import LintConfig
from .context import ValidationContext
from .errors import AmbiguousRuleError, DocumentParseError
from .fhir import FhirRouter
from .plugin_checks import check_plugin_contents, check_unreferenced_files
from .query import load_document
from .validation import ItemCollector, ValidationItem, ValidationResult

logger = logging.getLogger(__name__)

BPMN_SUFFIX = ".bpmn"
FHIR_SUFFIXES = (".xml", ".json")

# Build output that duplicates the sources when searching for BPMN files
_SKIPPED_DIRS = frozenset({"target", "build", "node_modules", ".git", ".idea", ".venv"})


@dataclass
class PluginProject:
    """Files of one process plugin."""
    root: Path
    name: str
    bpmn_files: list[Path] = field(default_factory=list)
    fhir_files: list[Path] = field(default_factory=list)

    @property
    def files(self) -> list[Path]:
        return self.bpmn_files + self.fhir_files

    def relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return str(path)

    @classmethod
    def discover(cls, context: ValidationContext) -> "PluginProject":
        """Collect BPMN files below ``bpe/`` of the resource roots and FHIR files below ``fhir/``.

        Without a ``bpe/`` folder every ``*.bpmn`` file of the project is used.
        """
        root = context.project_root
        resource_roots = context.resolver.index.resource_roots

        bpmn_files = sorted({
            path for resource_root in resource_roots
            for path in (Path(resource_root) / "bpe").rglob(f"*{BPMN_SUFFIX}") if path.is_file()
        })
        if not bpmn_files:
            bpmn_files = sorted(
                path for path in root.rglob(f"*{BPMN_SUFFIX}")
                if path.is_file() and not _SKIPPED_DIRS.intersection(path.relative_to(root).parts[:-1])
            )

        fhir_files = sorted({
            path for resource_root in resource_roots
            for path in (Path(resource_root) / "fhir").rglob("*")
            if path.is_file() and path.suffix.lower() in FHIR_SUFFIXES
        })

        name = context.config.project.name or root.name
        logger.info(f"Discovered plugin '{name}': {len(bpmn_files)} BPMN file(s), {len(fhir_files)} FHIR file(s)")
        return cls(root, name, bpmn_files, fhir_files)


class ProjectValidator:
    """Validates every file of a plugin project against the rule sets."""

    def __init__(self, context: ValidationContext, bpmn_router: BpmnRouter | None = None,
                 fhir_router: FhirRouter | None = None):
        self.context = context
        self.bpmn_router = bpmn_router or BpmnRouter()
        self.fhir_router = fhir_router or FhirRouter.with_default_rules()

    @classmethod
    def for_path(cls, project_root: Path, config: LintConfig | None = None) -> "ProjectValidator":
        return cls(ValidationContext.create(project_root, config))

    def validate(self, project: PluginProject | None = None) -> ValidationResult:
        """Validate all files of the project.

        Items are ordered by file (BPMN files first), then in check order,
        followed by the plugin-level items.
        """
        project = project or PluginProject.discover(self.context)
        workers = self.context.config.validation.workers
        logger.info(f"Starting validation of plugin '{project.name}' with {workers} worker(s)")

        result = ValidationResult()
        if workers > 1 and len(project.files) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                for items in executor.map(lambda path: self.validate_file(path, project), project.files):
                    result.extend(items)
        else:
            for path in project.files:
                result.extend(self.validate_file(path, project))

        result.extend(check_plugin_contents(project))
        result.extend(check_unreferenced_files(project))

        logger.info(f"Validation of '{project.name}' completed with status: {result.status.value}")
        logger.info(f"Found {len(result.items)} item(s): {result.counters}")
        return result

    def validate_file(self, path: Path, project: PluginProject) -> list[ValidationItem]:
        source = project.relative(path)
        try:
            document = load_document(path)
        except DocumentParseError as e:
            logger.warning(f"Unparsable file {source}: {e.reason}")
            collector = ItemCollector(file=source, reference=path.name)
            collector.error(
                "file_unparsable",
                f"file '{path.name}' is unparsable; other findings for plugin '{project.name}' may be incomplete",
            )
            return collector.items

        try:
            if path.suffix.lower() == BPMN_SUFFIX:
                return self.bpmn_router.route(ProcessGraph.from_document(document), self.context, source)
            return self.fhir_router.route(document, self.context, source)
        except AmbiguousRuleError:
            raise
        except Exception as e:
            logger.error(f"Validation of {source} failed with error: {e}")
            collector = ItemCollector(file=source, reference=path.name)
            collector.error("rule_execution_failed", f"Rule execution failed: {e}")
            return collector.items


def validate_project(project_root: Path, config: LintConfig | None = None) -> ValidationResult:
    """Validate the plugin project at project_root."""
    return ProjectValidator.for_path(project_root, config).validate()
