"""
In-memory model of a remote-debugging protocol document.

The model is a pure, immutable data container. Parsing only checks structural
shape (required keys present, lists where lists are expected); logically invalid
cross-references pass through to the resolver.
"""

# pylint: disable=too-many-instance-attributes

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from cdpgen.errors import MalformedSchema

PRIMITIVE_KINDS = ('integer', 'number', 'string', 'boolean', 'any', 'binary')
TYPE_KINDS = PRIMITIVE_KINDS + ('object', 'array')
REF_KIND = '$ref'


@dataclass(frozen=True)
class TypeReference:
    """
    A pointer to a type. ``kind`` is either a primitive kind, ``object``,
    ``array`` or ``$ref``. Inline enums and anonymous objects keep their shape
    here until the type mapper gives them a name.
    """
    kind: str
    ref: Optional[str] = None
    items: Optional['TypeReference'] = None
    enum: Optional[Tuple[str, ...]] = None
    properties: Optional[Tuple['Property', ...]] = None

    @property
    def is_reference(self) -> bool:
        return self.kind == REF_KIND

    @property
    def is_array(self) -> bool:
        return self.kind == 'array'

    @property
    def is_inline_enum(self) -> bool:
        return self.kind == 'string' and self.enum is not None

    @property
    def is_inline_object(self) -> bool:
        return self.kind == 'object' and self.properties is not None


@dataclass(frozen=True)
class Property:
    """A named, typed member of an object, a command parameter list, a result or an event payload."""
    name: str
    type: TypeReference
    optional: bool = False
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


Parameter = Property
ReturnField = Property


@dataclass(frozen=True)
class TypeDef:
    """A named type declared by a domain."""
    id: str
    type: TypeReference
    description: str = ''
    experimental: bool = False
    deprecated: bool = False

    @property
    def kind(self) -> str:
        """One of ``enum``, ``object``, ``array`` or ``primitive`` (alias of a primitive or untyped object)."""
        if self.type.is_inline_enum:
            return 'enum'
        if self.type.is_inline_object:
            return 'object'
        if self.type.is_array:
            return 'array'
        return 'primitive'


@dataclass(frozen=True)
class Command:
    name: str
    parameters: Tuple[Parameter, ...] = ()
    returns: Tuple[ReturnField, ...] = ()
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


@dataclass(frozen=True)
class Event:
    name: str
    parameters: Tuple[Parameter, ...] = ()
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


@dataclass(frozen=True)
class Domain:
    name: str
    description: str = ''
    experimental: bool = False
    deprecated: bool = False
    dependencies: Tuple[str, ...] = ()
    types: Tuple[TypeDef, ...] = ()
    commands: Tuple[Command, ...] = ()
    events: Tuple[Event, ...] = ()


@dataclass(frozen=True)
class ProtocolVersion:
    major: str
    minor: str

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class ProtocolDocument:
    """Root of the model. Domain order is significant and preserved."""
    domains: Tuple[Domain, ...]
    version: Optional[ProtocolVersion] = None

    def domain(self, name: str) -> Optional[Domain]:
        return next((d for d in self.domains if d.name == name), None)


JsonNode = Union[Dict[str, Any], List[Any], str, int, float, bool, None]


def _expect_dict(node: JsonNode, path: str) -> Dict[str, Any]:
    if not isinstance(node, dict):
        raise MalformedSchema(path, f"expected an object, got {type(node).__name__}")
    return node


def _expect_list(node: Dict[str, Any], key: str, path: str, required: bool = False) -> List[Any]:
    if key not in node:
        if required:
            raise MalformedSchema(path, f"missing required key '{key}'")
        return []
    value = node[key]
    if not isinstance(value, list):
        raise MalformedSchema(f"{path}.{key}", f"expected a list, got {type(value).__name__}")
    return value


def _expect_str(node: Dict[str, Any], key: str, path: str, required: bool = True) -> str:
    if key not in node:
        if required:
            raise MalformedSchema(path, f"missing required key '{key}'")
        return ''
    value = node[key]
    if not isinstance(value, str):
        raise MalformedSchema(f"{path}.{key}", f"expected a string, got {type(value).__name__}")
    return value


def _expect_bool(node: Dict[str, Any], key: str, path: str) -> bool:
    value = node.get(key, False)
    if not isinstance(value, bool):
        raise MalformedSchema(f"{path}.{key}", f"expected a boolean, got {type(value).__name__}")
    return value


def _parse_type_reference(node: Dict[str, Any], path: str) -> TypeReference:
    """ Parses the type-reference-shaped part of a property, parameter, typedef or array items node """
    if REF_KIND in node:
        return TypeReference(REF_KIND, ref=_expect_str(node, REF_KIND, path))
    if 'type' not in node:
        raise MalformedSchema(path, "expected either '$ref' or 'type'")
    kind = _expect_str(node, 'type', path)
    if kind not in TYPE_KINDS:
        raise MalformedSchema(f"{path}.type", f"unknown type kind '{kind}'")
    if kind == 'array':
        if 'items' not in node:
            raise MalformedSchema(path, "array type without 'items'")
        items_path = f"{path}.items"
        return TypeReference(kind, items=_parse_type_reference(_expect_dict(node['items'], items_path), items_path))
    if kind == 'string' and 'enum' in node:
        values = _expect_list(node, 'enum', path)
        for index, value in enumerate(values):
            if not isinstance(value, str):
                raise MalformedSchema(f"{path}.enum[{index}]", "enum literals must be strings")
        return TypeReference(kind, enum=tuple(values))
    if kind == 'object' and 'properties' in node:
        properties = _expect_list(node, 'properties', path)
        return TypeReference(kind, properties=tuple(
            _parse_property(p, f"{path}.properties[{i}]") for i, p in enumerate(properties)))
    return TypeReference(kind)


def _parse_property(node: JsonNode, path: str) -> Property:
    node = _expect_dict(node, path)
    return Property(
        name=_expect_str(node, 'name', path),
        type=_parse_type_reference(node, path),
        optional=_expect_bool(node, 'optional', path),
        description=_expect_str(node, 'description', path, required=False),
        experimental=_expect_bool(node, 'experimental', path),
        deprecated=_expect_bool(node, 'deprecated', path))


def _parse_typedef(node: JsonNode, path: str) -> TypeDef:
    node = _expect_dict(node, path)
    type_id = _expect_str(node, 'id', path)
    if 'type' not in node:
        raise MalformedSchema(path, "missing required key 'type'")
    return TypeDef(
        id=type_id,
        type=_parse_type_reference({k: v for k, v in node.items() if k != REF_KIND}, path),
        description=_expect_str(node, 'description', path, required=False),
        experimental=_expect_bool(node, 'experimental', path),
        deprecated=_expect_bool(node, 'deprecated', path))


def _parse_command(node: JsonNode, path: str) -> Command:
    node = _expect_dict(node, path)
    return Command(
        name=_expect_str(node, 'name', path),
        parameters=tuple(_parse_property(p, f"{path}.parameters[{i}]")
                         for i, p in enumerate(_expect_list(node, 'parameters', path))),
        returns=tuple(_parse_property(p, f"{path}.returns[{i}]")
                      for i, p in enumerate(_expect_list(node, 'returns', path))),
        description=_expect_str(node, 'description', path, required=False),
        experimental=_expect_bool(node, 'experimental', path),
        deprecated=_expect_bool(node, 'deprecated', path))


def _parse_event(node: JsonNode, path: str) -> Event:
    node = _expect_dict(node, path)
    return Event(
        name=_expect_str(node, 'name', path),
        parameters=tuple(_parse_property(p, f"{path}.parameters[{i}]")
                         for i, p in enumerate(_expect_list(node, 'parameters', path))),
        description=_expect_str(node, 'description', path, required=False),
        experimental=_expect_bool(node, 'experimental', path),
        deprecated=_expect_bool(node, 'deprecated', path))


def _parse_domain(node: JsonNode, path: str) -> Domain:
    node = _expect_dict(node, path)
    dependencies = _expect_list(node, 'dependencies', path)
    for index, dependency in enumerate(dependencies):
        if not isinstance(dependency, str):
            raise MalformedSchema(f"{path}.dependencies[{index}]", "dependency names must be strings")
    return Domain(
        name=_expect_str(node, 'domain', path),
        description=_expect_str(node, 'description', path, required=False),
        experimental=_expect_bool(node, 'experimental', path),
        deprecated=_expect_bool(node, 'deprecated', path),
        dependencies=tuple(dependencies),
        types=tuple(_parse_typedef(t, f"{path}.types[{i}]")
                    for i, t in enumerate(_expect_list(node, 'types', path))),
        commands=tuple(_parse_command(c, f"{path}.commands[{i}]")
                       for i, c in enumerate(_expect_list(node, 'commands', path))),
        events=tuple(_parse_event(e, f"{path}.events[{i}]")
                     for i, e in enumerate(_expect_list(node, 'events', path))))


def _parse_version(node: JsonNode, path: str) -> ProtocolVersion:
    node = _expect_dict(node, path)
    return ProtocolVersion(str(node.get('major', '')), str(node.get('minor', '')))


def parse_protocol(data: JsonNode, path: str = '$') -> ProtocolDocument:
    """
    Parses a protocol document from its JSON representation.

    Args:
        data: The decoded JSON document.
        path: Root path used in error messages.

    Returns:
        ProtocolDocument: The parsed document.

    Raises:
        MalformedSchema: The document does not have the expected shape.
    """
    data = _expect_dict(data, path)
    domains = _expect_list(data, 'domains', path, required=True)
    version = _parse_version(data['version'], f"{path}.version") if 'version' in data else None
    return ProtocolDocument(
        domains=tuple(_parse_domain(d, f"{path}.domains[{i}]") for i, d in enumerate(domains)),
        version=version)


def merge_protocols(documents: Sequence[ProtocolDocument]) -> ProtocolDocument:
    """
    Concatenates the domains of several documents in the given order. The first
    version marker wins.
    """
    domains: List[Domain] = []
    seen: Dict[str, int] = {}
    for doc_index, document in enumerate(documents):
        for domain_index, domain in enumerate(document.domains):
            if domain.name in seen:
                raise MalformedSchema(f"documents[{doc_index}].domains[{domain_index}].domain",
                                      f"domain '{domain.name}' is defined more than once")
            seen[domain.name] = len(domains)
            domains.append(domain)
    version = next((d.version for d in documents if d.version is not None), None)
    return ProtocolDocument(domains=tuple(domains), version=version)


def load_protocol(paths: Union[str, Sequence[str]]) -> ProtocolDocument:
    """
    Loads one or more protocol files and merges them into a single document.

    Args:
        paths: A file path or a list of file paths.

    Returns:
        ProtocolDocument: The merged document.
    """
    if isinstance(paths, str):
        paths = [paths]
    documents = []
    for file_path in paths:
        try:
            with open(file_path, 'r', encoding='utf-8') as file:
                data = json.load(file)
        except json.JSONDecodeError as e:
            raise MalformedSchema(os.path.basename(file_path), f"invalid JSON: {e.msg}", cause=e) from e
        documents.append(parse_protocol(data, os.path.basename(file_path)))
    if len(documents) == 1:
        return documents[0]
    return merge_protocols(documents)


def _type_reference_to_json(ref: TypeReference, node: Dict[str, Any]) -> Dict[str, Any]:
    if ref.is_reference:
        node[REF_KIND] = ref.ref
        return node
    node['type'] = ref.kind
    if ref.items is not None:
        node['items'] = _type_reference_to_json(ref.items, {})
    if ref.enum is not None:
        node['enum'] = list(ref.enum)
    if ref.properties is not None:
        node['properties'] = [_property_to_json(p) for p in ref.properties]
    return node


def _flags_to_json(item: Any, node: Dict[str, Any]) -> Dict[str, Any]:
    if item.description:
        node['description'] = item.description
    if item.experimental:
        node['experimental'] = True
    if item.deprecated:
        node['deprecated'] = True
    return node


def _property_to_json(prop: Property) -> Dict[str, Any]:
    node: Dict[str, Any] = {'name': prop.name}
    _flags_to_json(prop, node)
    if prop.optional:
        node['optional'] = True
    return _type_reference_to_json(prop.type, node)


def protocol_to_json(document: ProtocolDocument) -> Dict[str, Any]:
    """Converts a document back to its JSON representation, omitting defaults."""
    result: Dict[str, Any] = {}
    if document.version is not None:
        result['version'] = {'major': document.version.major, 'minor': document.version.minor}
    domains = []
    for domain in document.domains:
        node: Dict[str, Any] = {'domain': domain.name}
        _flags_to_json(domain, node)
        if domain.dependencies:
            node['dependencies'] = list(domain.dependencies)
        if domain.types:
            node['types'] = [_type_reference_to_json(t.type, _flags_to_json(t, {'id': t.id})) for t in domain.types]
        if domain.commands:
            commands = []
            for command in domain.commands:
                cmd = _flags_to_json(command, {'name': command.name})
                if command.parameters:
                    cmd['parameters'] = [_property_to_json(p) for p in command.parameters]
                if command.returns:
                    cmd['returns'] = [_property_to_json(p) for p in command.returns]
                commands.append(cmd)
            node['commands'] = commands
        if domain.events:
            events = []
            for event in domain.events:
                evt = _flags_to_json(event, {'name': event.name})
                if event.parameters:
                    evt['parameters'] = [_property_to_json(p) for p in event.parameters]
                events.append(evt)
            node['events'] = events
        domains.append(node)
    result['domains'] = domains
    return result


def save_protocol(document: ProtocolDocument, path: str) -> None:
    """Writes a document to a JSON file."""
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as file:
        json.dump(protocol_to_json(document), file, indent=2)
        file.write('\n')
