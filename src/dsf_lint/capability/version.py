"""Detection of the DSF plugin API generation a project is built against."""

import logging
from pathlib import Path

from .contracts import V1_PLUGIN_DEFINITION, V2_PLUGIN_DEFINITION, ApiVersion

logger = logging.getLogger(__name__)

SERVICE_DIRS = (
    "META-INF/services",
    "src/main/resources/META-INF/services",
    "target/classes/META-INF/services",
    "build/resources/main/META-INF/services",
    "build/classes/java/main/META-INF/services",
)


def detect_api_version(project_root: Path) -> ApiVersion:
    """Read the ServiceLoader registration of the ProcessPluginDefinition.

    An exact ``dev.dsf.bpe.v2.ProcessPluginDefinition`` (or v1) service file
    wins; otherwise any service file named ``dev.dsf.bpe.v2*``/``v1*``
    decides, v2 first.
    """
    project_root = Path(project_root)
    directories = [project_root / d for d in SERVICE_DIRS if (project_root / d).is_dir()]

    for directory in directories:
        if (directory / V2_PLUGIN_DEFINITION).is_file():
            logger.debug(f"API v2 service file found in {directory}")
            return ApiVersion.V2
        if (directory / V1_PLUGIN_DEFINITION).is_file():
            logger.debug(f"API v1 service file found in {directory}")
            return ApiVersion.V1

    names = [p.name for d in directories for p in d.iterdir() if p.is_file()]
    if any(name.startswith("dev.dsf.bpe.v2") for name in names):
        return ApiVersion.V2
    if any(name.startswith("dev.dsf.bpe.v1") for name in names):
        return ApiVersion.V1

    logger.info(f"No ProcessPluginDefinition service registration found under {project_root}")
    return ApiVersion.UNKNOWN
