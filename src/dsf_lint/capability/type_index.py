"""Project-scoped index of Java types and their declared supertypes.

The index is assembled without a JVM from compiled classes (directories and
jars), Java sources and a built-in table of the DSF and Camunda API types,
so that assignability can be decided for plugin classes whose API
dependencies are not shipped with the project.
"""

import logging
import zipfile
from collections import deque
from pathlib import Path

from ..cache import ReferenceCache
from .classfile import ClassFormatError, TypeInfo, read_class, read_source
from . import contracts as c

logger = logging.getLogger(__name__)

DEFAULT_CLASS_DIRS = ("target/classes", "build/classes/java/main", "build/classes", ".")
DEFAULT_JAR_DIRS = (".", "target", "target/dependency", "lib")
DEFAULT_SOURCE_DIRS = ("src/main/java",)

_CAMUNDA_DELEGATE = "org.camunda.bpm.engine.delegate"

# Hierarchy of API types plugins build on, as published by the DSF BPE API jars
KNOWN_API_TYPES: tuple[TypeInfo, ...] = (
    TypeInfo(c.JAVA_DELEGATE.type_name, is_interface=True, origin="api"),
    TypeInfo(c.TASK_LISTENER.type_name, is_interface=True, origin="api"),
    TypeInfo(c.CAMUNDA_EXECUTION_LISTENER.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V1_ABSTRACT_SERVICE_DELEGATE, "java.lang.Object",
             (c.JAVA_DELEGATE.type_name, "org.springframework.beans.factory.InitializingBean"), origin="api"),
    TypeInfo(c.V1_ABSTRACT_TASK_MESSAGE_SEND, "java.lang.Object",
             (c.JAVA_DELEGATE.type_name, "org.springframework.beans.factory.InitializingBean"), origin="api"),
    TypeInfo(c.V1_DEFAULT_USER_TASK_LISTENER, "java.lang.Object",
             (c.TASK_LISTENER.type_name, "org.springframework.beans.factory.InitializingBean"), origin="api"),
    TypeInfo(c.V1_PLUGIN_DEFINITION, is_interface=True, origin="api"),
    TypeInfo(c.V2_SERVICE_TASK.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V2_MESSAGE_SEND_TASK.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V2_MESSAGE_INTERMEDIATE_THROW_EVENT.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V2_MESSAGE_END_EVENT.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V2_USER_TASK_LISTENER.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V2_EXECUTION_LISTENER.type_name, is_interface=True, origin="api"),
    TypeInfo(c.V2_DEFAULT_USER_TASK_LISTENER, "java.lang.Object", (c.V2_USER_TASK_LISTENER.type_name,), origin="api"),
    TypeInfo(c.V2_ABSTRACT_TASK_MESSAGE_SEND, "java.lang.Object",
             (c.V2_MESSAGE_SEND_TASK.type_name, c.V2_MESSAGE_INTERMEDIATE_THROW_EVENT.type_name,
              c.V2_MESSAGE_END_EVENT.type_name), origin="api"),
    TypeInfo(c.V2_PLUGIN_DEFINITION, is_interface=True, origin="api"),
)


class TypeIndex:
    """Lazily built map of binary type name to TypeInfo for one project."""

    def __init__(self, project_root: Path, class_dirs: tuple[str, ...] | list[str] = DEFAULT_CLASS_DIRS,
                 jar_dirs: tuple[str, ...] | list[str] = DEFAULT_JAR_DIRS,
                 source_dirs: tuple[str, ...] | list[str] = DEFAULT_SOURCE_DIRS,
                 cache: ReferenceCache | None = None):
        self.project_root = Path(project_root).resolve()
        self.class_dirs = tuple(class_dirs)
        self.jar_dirs = tuple(jar_dirs)
        self.source_dirs = tuple(source_dirs)
        self.cache = cache if cache is not None else ReferenceCache()
        self.build_count = 0

    def _types(self) -> dict[str, TypeInfo]:
        return self.cache.get_or_compute(("types", str(self.project_root)), self._build)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._types()

    def __len__(self) -> int:
        return len(self._types())

    def get(self, type_name: str) -> TypeInfo | None:
        return self._types().get(type_name)

    def supertypes(self, type_name: str) -> set[str]:
        """All transitive supertypes of a type (classes and interfaces)."""
        key = ("supertypes", type_name, str(self.project_root))
        return self.cache.get_or_compute(key, lambda: self._closure(type_name))

    def _closure(self, type_name: str) -> set[str]:
        types = self._types()
        seen: set[str] = set()
        queue = deque([type_name])
        while queue:
            info = types.get(queue.popleft())
            if info is None:
                continue
            for parent in info.supertypes:
                if parent not in seen:
                    seen.add(parent)
                    queue.append(parent)
        return seen

    def _build(self) -> dict[str, TypeInfo]:
        self.build_count += 1
        types: dict[str, TypeInfo] = {info.name: info for info in KNOWN_API_TYPES}

        # Precedence: sources < jars < compiled project classes
        for info in self._scan_sources():
            types[info.name] = info
        for info in self._scan_jars():
            types[info.name] = info
        for info in self._scan_class_dirs():
            types[info.name] = info

        logger.debug(f"Type index for {self.project_root}: {len(types)} types")
        return types

    def _existing_dirs(self, relative: tuple[str, ...]) -> list[Path]:
        dirs = []
        for rel in relative:
            path = (self.project_root / rel).resolve()
            if path.is_dir() and path not in dirs:
                dirs.append(path)
        return dirs

    def _scan_class_dirs(self) -> list[TypeInfo]:
        found = []
        seen_files: set[Path] = set()
        for directory in self._existing_dirs(self.class_dirs):
            for path in sorted(directory.rglob("*.class")):
                if path in seen_files:
                    continue
                seen_files.add(path)
                try:
                    found.append(read_class(path.read_bytes(), str(path)))
                except (OSError, ClassFormatError) as e:
                    logger.debug(f"Skipping unreadable class file {path}: {e}")
        return found

    def _scan_jars(self) -> list[TypeInfo]:
        found = []
        seen: set[Path] = set()
        for directory in self._existing_dirs(self.jar_dirs):
            for jar in sorted(directory.glob("*.jar")):
                if jar in seen:
                    continue
                seen.add(jar)
                try:
                    with zipfile.ZipFile(jar) as archive:
                        for name in archive.namelist():
                            if not name.endswith(".class") or name.startswith("META-INF/"):
                                continue
                            try:
                                found.append(read_class(archive.read(name), f"{jar}!/{name}"))
                            except ClassFormatError as e:
                                logger.debug(f"Skipping unreadable class {name} in {jar}: {e}")
                except (OSError, zipfile.BadZipFile) as e:
                    logger.warning(f"Cannot read classes from {jar}: {e}")
        return found

    def _scan_sources(self) -> list[TypeInfo]:
        found = []
        for directory in self._existing_dirs(self.source_dirs):
            for path in sorted(directory.rglob("*.java")):
                try:
                    info = read_source(path.read_text(encoding="utf-8", errors="replace"), str(path))
                except OSError as e:
                    logger.debug(f"Skipping unreadable source {path}: {e}")
                    continue
                if info is not None:
                    found.append(info)
        return found
