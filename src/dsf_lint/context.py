"""Shared state of one validation run."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .cache import ReferenceCache
from .capability import ApiVersion, CapabilityResolver, TypeIndex, detect_api_version
from .codes import CodeSystemRegistry
from .config import LintConfig, create_default_config
from .errors import ProjectRootError
from .resolver import CrossReferenceResolver, ResourceIndex, ResourceKind, find_resource_roots

logger = logging.getLogger(__name__)


@dataclass
class ValidationContext:
    """Everything rule sets may consult besides the document under validation.

    One context is created per run and passed by reference to every router
    and rule. Its caches and code registry live exactly as long as the run.
    """
    project_root: Path
    config: LintConfig
    api_version: ApiVersion
    resolver: CrossReferenceResolver
    capabilities: CapabilityResolver
    codes: CodeSystemRegistry
    cache: ReferenceCache

    @classmethod
    def create(cls, project_root: Path, config: LintConfig | None = None,
               cache: ReferenceCache | None = None) -> "ValidationContext":
        """Build the resolvers for a project root.

        Raises:
            ProjectRootError: If the project root does not exist or is not a directory
        """
        project_root = Path(project_root)
        if not project_root.is_dir():
            raise ProjectRootError(f"Project root not found: {project_root}")
        project_root = project_root.resolve()
        config = config or create_default_config()
        cache = cache if cache is not None else ReferenceCache()

        if config.resources.roots:
            roots = [(project_root / root).resolve() for root in config.resources.roots]
        else:
            roots = find_resource_roots(project_root)
        index = ResourceIndex(project_root, roots, config.resources.include_jars, cache)
        resolver = CrossReferenceResolver(index)

        type_index = TypeIndex(
            project_root,
            class_dirs=config.capability.class_dirs,
            jar_dirs=config.capability.jar_dirs,
            source_dirs=config.capability.source_dirs,
            cache=cache,
        )

        if config.capability.api_version == "auto":
            api_version = detect_api_version(project_root)
        else:
            api_version = ApiVersion(config.capability.api_version)

        codes = CodeSystemRegistry()
        for entry in index.entries(ResourceKind.CODE_SYSTEM):
            codes.add_code_system(entry.document)

        logger.info(f"Validation context for {project_root}: API {api_version.value}, "
                    f"resource roots {[str(r) for r in roots]}")
        return cls(project_root, config, api_version, resolver, CapabilityResolver(type_index), codes, cache)
