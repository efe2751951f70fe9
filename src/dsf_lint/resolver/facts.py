"""Facts extracted from FHIR resources for cross-reference lookups."""

from ..query import QueryNode, is_blank

MESSAGE_NAME_EXTENSION = "message-name"


def strip_version(canonical: str | None) -> str | None:
    """Remove a ``|version`` suffix from a canonical URL."""
    if canonical is None:
        return None
    return canonical.split("|", 1)[0].strip()


def canonical_url(document: QueryNode) -> str | None:
    url = document.value("url")
    return None if is_blank(url) else url.strip()


def message_names(activity_definition: QueryNode) -> set[str]:
    """Message names declared in ``extension[url=message-name]`` of an ActivityDefinition."""
    names = set()
    for extension in activity_definition.iter("extension"):
        if extension.attr("url") != MESSAGE_NAME_EXTENSION:
            continue
        for path in ("valueString", "fixedString"):
            value = extension.value(path)
            if not is_blank(value):
                names.add(value.strip())
    return names


def structure_definition_values(structure_definition: QueryNode) -> set[str]:
    """The url plus every fixedString/valueString value of a StructureDefinition."""
    values = set()
    url = canonical_url(structure_definition)
    if url:
        values.add(url)
    for name in ("fixedString", "valueString"):
        for node in structure_definition.iter(name):
            value = node.attr("value")
            if not is_blank(value):
                values.add(value.strip())
    return values


def element_by_id(structure_definition: QueryNode, element_id: str) -> QueryNode | None:
    """First ``element`` with the given id in the differential, then the snapshot."""
    for section in ("differential", "snapshot"):
        for element in structure_definition.find_all(f"{section}/element"):
            if element.attr("id") == element_id:
                return element
    return None


def fixed_value(structure_definition: QueryNode, element_id: str, value_type: str) -> str | None:
    """The ``fixed<Type>`` value of an element, e.g. fixedCanonical of Task.instantiatesCanonical."""
    element = element_by_id(structure_definition, element_id)
    if element is None:
        return None
    value = element.value(f"fixed{value_type}")
    return None if is_blank(value) else value.strip()
