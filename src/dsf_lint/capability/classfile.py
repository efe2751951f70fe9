"""Minimal reader for the type hierarchy recorded in Java class files.

Only the constant pool, ``this_class``, ``super_class`` and the interface
table are decoded (JVMS chapter 4).
"""

import re
import struct
from dataclasses import dataclass, field

CLASS_MAGIC = 0xCAFEBABE

ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400

# Constant pool tag -> payload size in bytes (UTF-8 entries are length prefixed)
_CONSTANT_SIZES = {
    3: 4,   # Integer
    4: 4,   # Float
    5: 8,   # Long
    6: 8,   # Double
    7: 2,   # Class
    8: 2,   # String
    9: 4,   # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}
_UTF8 = 1
_CLASS = 7


class ClassFormatError(ValueError):
    """The bytes are not a readable class file."""


@dataclass(frozen=True)
class TypeInfo:
    """Declared supertypes of one Java type (binary names with dots)."""
    name: str
    super_name: str | None = None
    interfaces: tuple[str, ...] = ()
    is_interface: bool = False
    origin: str = ""

    @property
    def supertypes(self) -> tuple[str, ...]:
        return ((self.super_name,) if self.super_name else ()) + self.interfaces


@dataclass
class _Reader:
    data: bytes
    offset: int = 0

    def read(self, fmt: str) -> tuple:
        size = struct.calcsize(fmt)
        if self.offset + size > len(self.data):
            raise ClassFormatError("truncated class file")
        values = struct.unpack_from(fmt, self.data, self.offset)
        self.offset += size
        return values

    def skip(self, size: int) -> None:
        if self.offset + size > len(self.data):
            raise ClassFormatError("truncated class file")
        self.offset += size


def _binary_name(internal: str) -> str:
    return internal.replace("/", ".")


def read_class(data: bytes, origin: str = "") -> TypeInfo:
    """Decode name, super class and interfaces from class file bytes."""
    reader = _Reader(data)
    magic, _minor, _major, pool_count = reader.read(">IHHH")
    if magic != CLASS_MAGIC:
        raise ClassFormatError("bad magic number")

    utf8: dict[int, str] = {}
    class_refs: dict[int, int] = {}
    index = 1
    while index < pool_count:
        (tag,) = reader.read(">B")
        if tag == _UTF8:
            (length,) = reader.read(">H")
            start = reader.offset
            reader.skip(length)
            # Modified UTF-8; the names we need are plain identifiers
            utf8[index] = data[start:start + length].decode("utf-8", errors="replace")
        elif tag == _CLASS:
            (class_refs[index],) = reader.read(">H")
        elif tag in _CONSTANT_SIZES:
            reader.skip(_CONSTANT_SIZES[tag])
        else:
            raise ClassFormatError(f"unknown constant pool tag {tag}")
        # Long and Double occupy two pool slots
        index += 2 if tag in (5, 6) else 1

    access, this_index, super_index, interface_count = reader.read(">HHHH")
    interface_indexes = reader.read(f">{interface_count}H") if interface_count else ()

    def class_name(pool_index: int) -> str:
        try:
            return _binary_name(utf8[class_refs[pool_index]])
        except KeyError as e:
            raise ClassFormatError(f"bad class reference {pool_index}") from e

    return TypeInfo(
        name=class_name(this_index),
        super_name=class_name(super_index) if super_index else None,
        interfaces=tuple(class_name(i) for i in interface_indexes),
        is_interface=bool(access & ACC_INTERFACE),
        origin=origin,
    )


_PACKAGE = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
_IMPORT = re.compile(r"^\s*import\s+([\w.]+)\s*;", re.MULTILINE)
_DECLARATION = re.compile(
    r"\b(?P<kind>class|interface)\s+(?P<name>\w+)\s*(?:<[^{]*?>)?\s*"
    r"(?:extends\s+(?P<extends>[\w.\s,<>?]+?))?\s*"
    r"(?:implements\s+(?P<implements>[\w.\s,<>?]+?))?\s*\{"
)
_COMMENTS = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)


@dataclass
class _SourceScope:
    package: str
    imports: dict[str, str] = field(default_factory=dict)

    def qualify(self, simple: str) -> str:
        simple = re.sub(r"<.*", "", simple).strip()
        if "." in simple:
            return simple
        if simple in self.imports:
            return self.imports[simple]
        return f"{self.package}.{simple}" if self.package else simple


def _split_types(text: str | None) -> list[str]:
    if not text:
        return []
    # Drop generic arguments before splitting on commas
    depth, cleaned = 0, []
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif depth == 0:
            cleaned.append(ch)
    return [t.strip() for t in "".join(cleaned).split(",") if t.strip()]


def read_source(text: str, origin: str = "") -> TypeInfo | None:
    """Best-effort hierarchy of the top-level type declared in a Java source file."""
    text = _COMMENTS.sub("", text)
    package_match = _PACKAGE.search(text)
    scope = _SourceScope(package_match.group(1) if package_match else "")
    for imported in _IMPORT.findall(text):
        scope.imports[imported.rsplit(".", 1)[-1]] = imported

    declaration = _DECLARATION.search(text)
    if not declaration:
        return None

    is_interface = declaration.group("kind") == "interface"
    extends = [scope.qualify(t) for t in _split_types(declaration.group("extends"))]
    implements = [scope.qualify(t) for t in _split_types(declaration.group("implements"))]
    if is_interface:
        super_name, interfaces = None, extends
    else:
        super_name, interfaces = (extends[0] if extends else None), implements

    return TypeInfo(
        name=scope.qualify(declaration.group("name")),
        super_name=super_name,
        interfaces=tuple(interfaces),
        is_interface=is_interface,
        origin=origin,
    )
