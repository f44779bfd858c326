"""
Maps resolved type references to type descriptors and synthesizes named types.

Every enum and object shape ends up as a named type. Declared ones keep their
id; inline enums, anonymous objects, command results and event payloads get a
name derived from their owner, made unique per domain in document order. Alias
types (primitive, array, untyped object, any) are transparent and expand at each
use; an alias that can reach itself through alias bodies is materialized as a
named alias and referenced by name at every use site.
"""

# pylint: disable=too-many-instance-attributes

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from cdpgen.common import pascal
from cdpgen.constants import ARRAY_ITEM_SUFFIX, MAX_NAME_SUFFIX, RESULT_SUFFIX
from cdpgen.dependency_resolver import sort_types_by_dependencies
from cdpgen.errors import NameCollision
from cdpgen.resolver import ResolvedProtocol, TypeHandle, TypeKey
from cdpgen.schema import Domain, Property, ProtocolVersion, TypeReference

logger = logging.getLogger(__name__)

ShapePath = Tuple[str, ...]


@dataclass(frozen=True)
class PrimitiveDescriptor:
    """``integer``, ``number``, ``string``, ``boolean``, ``binary`` or ``object`` (untyped map)."""
    kind: str


@dataclass(frozen=True)
class OpaqueDescriptor:
    """Untyped payload without structural guarantees."""


@dataclass(frozen=True)
class NamedTypeDescriptor:
    """Points at a generated type. ``kind`` is ``enum``, ``object`` or ``alias``."""
    domain: str
    name: str
    kind: str


@dataclass(frozen=True)
class CollectionDescriptor:
    item: 'TypeDescriptor'


TypeDescriptor = Union[PrimitiveDescriptor, OpaqueDescriptor, NamedTypeDescriptor, CollectionDescriptor]

OPAQUE = OpaqueDescriptor()


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    type: TypeDescriptor
    optional: bool = False
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


@dataclass(frozen=True)
class DataType:
    """
    A named type to emit. ``kind`` is ``enum``, ``object`` or ``alias``; ``origin``
    tells where the name came from (``declared``, ``inline``, ``result``, ``event``).
    """
    domain: str
    name: str
    kind: str
    origin: str = 'declared'
    fields: Tuple[FieldDescriptor, ...] = ()
    values: Tuple[str, ...] = ()
    target: Optional[TypeDescriptor] = None
    description: str = ''
    experimental: bool = False
    deprecated: bool = False

    @property
    def descriptor(self) -> NamedTypeDescriptor:
        return NamedTypeDescriptor(self.domain, self.name, self.kind)


@dataclass(frozen=True)
class MappedCommand:
    name: str
    parameters: Tuple[FieldDescriptor, ...]
    result: Optional[NamedTypeDescriptor]
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


@dataclass(frozen=True)
class MappedEvent:
    name: str
    parameters: Tuple[FieldDescriptor, ...]
    payload: NamedTypeDescriptor
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


@dataclass(frozen=True)
class MappedDomain:
    name: str
    types: Tuple[DataType, ...]
    commands: Tuple[MappedCommand, ...]
    events: Tuple[MappedEvent, ...]
    external_domains: Tuple[str, ...] = ()
    description: str = ''
    experimental: bool = False
    deprecated: bool = False

    def data_type(self, name: str) -> Optional[DataType]:
        return next((t for t in self.types if t.name == name), None)


@dataclass(frozen=True)
class MappedProtocol:
    domains: Tuple[MappedDomain, ...]
    version: Optional[ProtocolVersion] = None

    def domain(self, name: str) -> Optional[MappedDomain]:
        return next((d for d in self.domains if d.name == name), None)


def iter_named(descriptor: Optional[TypeDescriptor]) -> Iterator[NamedTypeDescriptor]:
    """Yields the named types a descriptor points at, looking through collections."""
    if isinstance(descriptor, NamedTypeDescriptor):
        yield descriptor
    elif isinstance(descriptor, CollectionDescriptor):
        yield from iter_named(descriptor.item)


class NameRegistry:
    """Type names taken within one domain."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        self._taken: Dict[str, None] = {}

    def reserve(self, name: str) -> None:
        self._taken[name] = None

    def synthesize(self, base: str) -> str:
        """Takes ``base``, or ``base2`` .. ``base<MAX_NAME_SUFFIX>`` when already taken."""
        candidates = [base] + [f"{base}{n}" for n in range(2, MAX_NAME_SUFFIX + 1)]
        for candidate in candidates:
            if candidate not in self._taken:
                self._taken[candidate] = None
                return candidate
        raise NameCollision(self.domain, base)


class _DomainParts:
    """Intermediate per-domain results, assembled once every domain has been mapped."""

    def __init__(self, domain: Domain) -> None:
        self.domain = domain
        self.declared: Dict[str, DataType] = {}
        self.inline: List[DataType] = []
        self.commands: List[MappedCommand] = []
        self.events: List[MappedEvent] = []


class TypeMapper:
    """Maps a resolved protocol to descriptors and named data types."""

    def __init__(self, resolved: ResolvedProtocol) -> None:
        self.resolved = resolved
        self._names: Dict[Tuple[str, ShapePath], str] = {}
        self._materialized: Dict[TypeKey, None] = {}

    def map_protocol(self) -> MappedProtocol:
        """
        Maps every domain of the resolved document.

        Returns:
            MappedProtocol: Domains with their named data types, commands and events.

        Raises:
            NameCollision: A synthesized name cannot be made unique.
        """
        document = self.resolved.document
        for domain in document.domains:
            self._name_domain(domain)
        self._find_recursive_aliases()
        parts = [self._map_domain(domain) for domain in document.domains]
        aliases = self._materialize_aliases()
        domains = tuple(self._assemble(part, aliases) for part in parts)
        return MappedProtocol(domains, document.version)

    # naming

    def _name_domain(self, domain: Domain) -> None:
        registry = NameRegistry(domain.name)
        for typedef in domain.types:
            registry.reserve(typedef.id)
        for command in domain.commands:
            if command.returns:
                self._names[(domain.name, ('command', command.name, 'result'))] = \
                    registry.synthesize(pascal(command.name) + RESULT_SUFFIX)
        for event in domain.events:
            self._names[(domain.name, ('event', event.name, 'payload'))] = registry.synthesize(pascal(event.name))
        for typedef in domain.types:
            if typedef.kind == 'object':
                self._name_properties(domain, registry, typedef.type.properties or (), typedef.id, ('type', typedef.id))
            elif typedef.kind == 'array':
                self._name_shape(domain, registry, typedef.type, typedef.id, ARRAY_ITEM_SUFFIX, ('type', typedef.id))
        for command in domain.commands:
            self._name_properties(domain, registry, command.parameters, command.name, ('command', command.name, 'parameters'))
            self._name_properties(domain, registry, command.returns, command.name, ('command', command.name, 'returns'))
        for event in domain.events:
            self._name_properties(domain, registry, event.parameters, event.name, ('event', event.name, 'parameters'))

    def _name_properties(self, domain: Domain, registry: NameRegistry, properties: Tuple[Property, ...],
                         owner: str, path: ShapePath) -> None:
        for prop in properties:
            self._name_shape(domain, registry, prop.type, owner, prop.name, path + (prop.name,))

    def _name_shape(self, domain: Domain, registry: NameRegistry, ref: TypeReference,
                    owner: str, member: str, path: ShapePath) -> None:
        if ref.is_inline_enum:
            self._names[(domain.name, path)] = registry.synthesize(pascal(owner) + pascal(member))
        elif ref.is_inline_object:
            name = registry.synthesize(pascal(owner) + pascal(member))
            self._names[(domain.name, path)] = name
            self._name_properties(domain, registry, ref.properties or (), name, path + ('properties',))
        elif ref.is_array and ref.items is not None:
            self._name_shape(domain, registry, ref.items, owner, member, path + ('items',))

    # mapping

    def _map_domain(self, domain: Domain) -> _DomainParts:
        part = _DomainParts(domain)
        for typedef in domain.types:
            path: ShapePath = ('type', typedef.id)
            if typedef.kind == 'enum':
                part.declared[typedef.id] = DataType(
                    domain.name, typedef.id, 'enum', values=typedef.type.enum or (),
                    description=typedef.description, experimental=typedef.experimental,
                    deprecated=typedef.deprecated)
            elif typedef.kind == 'object':
                fields = self._map_fields(domain.name, typedef.type.properties or (), path, part.inline)
                part.declared[typedef.id] = DataType(
                    domain.name, typedef.id, 'object', fields=fields,
                    description=typedef.description, experimental=typedef.experimental,
                    deprecated=typedef.deprecated)
            else:
                # alias bodies only contribute their inline shapes here
                self._collect_inline(domain.name, typedef.type, path, part.inline, typedef.description)
        for command in domain.commands:
            base: ShapePath = ('command', command.name)
            parameters = self._map_fields(domain.name, command.parameters, base + ('parameters',), part.inline)
            result = None
            if command.returns:
                result_name = self._names[(domain.name, base + ('result',))]
                returns = self._map_fields(domain.name, command.returns, base + ('returns',), part.inline)
                result_type = DataType(domain.name, result_name, 'object', origin='result', fields=returns,
                                       description=f"Return object for {domain.name}.{command.name}.")
                part.inline.append(result_type)
                result = result_type.descriptor
            part.commands.append(MappedCommand(
                command.name, parameters, result, command.description,
                command.experimental, command.deprecated))
        for event in domain.events:
            base = ('event', event.name)
            parameters = self._map_fields(domain.name, event.parameters, base + ('parameters',), part.inline)
            payload_type = DataType(domain.name, self._names[(domain.name, base + ('payload',))], 'object',
                                    origin='event', fields=parameters, description=event.description,
                                    experimental=event.experimental, deprecated=event.deprecated)
            part.inline.append(payload_type)
            part.events.append(MappedEvent(
                event.name, parameters, payload_type.descriptor, event.description,
                event.experimental, event.deprecated))
        return part

    def _map_fields(self, domain: str, properties: Tuple[Property, ...], path: ShapePath,
                    collected: List[DataType]) -> Tuple[FieldDescriptor, ...]:
        fields = []
        for prop in properties:
            prop_path = path + (prop.name,)
            self._collect_inline(domain, prop.type, prop_path, collected, prop.description)
            fields.append(FieldDescriptor(
                prop.name, self.map_reference(domain, prop.type, prop_path), prop.optional,
                prop.description, prop.experimental, prop.deprecated))
        return tuple(fields)

    def _collect_inline(self, domain: str, ref: TypeReference, path: ShapePath,
                        collected: List[DataType], description: str) -> None:
        """Creates the data types for inline enums and anonymous objects found at their owning location."""
        if ref.is_inline_enum:
            collected.append(DataType(domain, self._names[(domain, path)], 'enum', origin='inline',
                                      values=ref.enum or (), description=description))
        elif ref.is_inline_object:
            nested: List[DataType] = []
            fields = self._map_fields(domain, ref.properties or (), path + ('properties',), nested)
            collected.append(DataType(domain, self._names[(domain, path)], 'object', origin='inline',
                                      fields=fields, description=description))
            collected.extend(nested)
        elif ref.is_array and ref.items is not None:
            self._collect_inline(domain, ref.items, path + ('items',), collected, description)

    def map_reference(self, domain: str, ref: TypeReference, path: ShapePath) -> TypeDescriptor:
        """
        Maps a type reference as written inside ``domain`` at ``path``.

        Args:
            domain: The domain that owns the reference.
            ref: The reference to map.
            path: Location of the reference, used to look up synthesized names.

        Returns:
            TypeDescriptor: The mapped descriptor.
        """
        if ref.is_reference and ref.ref is not None:
            return self._map_handle(self.resolved.handle(domain, ref.ref))
        if ref.is_inline_enum:
            return NamedTypeDescriptor(domain, self._names[(domain, path)], 'enum')
        if ref.is_inline_object:
            return NamedTypeDescriptor(domain, self._names[(domain, path)], 'object')
        if ref.is_array and ref.items is not None:
            return CollectionDescriptor(self.map_reference(domain, ref.items, path + ('items',)))
        if ref.kind == 'any':
            return OPAQUE
        return PrimitiveDescriptor(ref.kind)

    def _map_handle(self, handle: TypeHandle) -> TypeDescriptor:
        typedef = handle.typedef
        if typedef.kind in ('enum', 'object'):
            return NamedTypeDescriptor(handle.domain, typedef.id, typedef.kind)
        if handle.key in self._materialized:
            return NamedTypeDescriptor(handle.domain, typedef.id, 'alias')
        return self.map_reference(handle.domain, typedef.type, ('type', typedef.id))

    def _find_recursive_aliases(self) -> None:
        """Marks every alias whose body can reach the alias itself, before any use site is mapped."""
        for domain in self.resolved.document.domains:
            for typedef in domain.types:
                if typedef.kind in ('enum', 'object'):
                    continue
                key = (domain.name, typedef.id)
                if self._reaches_alias(key, domain.name, typedef.type, set()):
                    logger.debug("Materializing self-referencing alias %s.%s", domain.name, typedef.id)
                    self._materialized[key] = None

    def _reaches_alias(self, target: TypeKey, domain: str, ref: TypeReference, visited: Set[TypeKey]) -> bool:
        # enums and objects are named types, so expansion stops there
        if ref.is_reference and ref.ref is not None:
            handle = self.resolved.handle(domain, ref.ref)
            if handle.typedef.kind in ('enum', 'object'):
                return False
            if handle.key == target:
                return True
            if handle.key in visited:
                return False
            visited.add(handle.key)
            return self._reaches_alias(target, handle.domain, handle.typedef.type, visited)
        if ref.is_array and ref.items is not None:
            return self._reaches_alias(target, domain, ref.items, visited)
        return False

    def _materialize_aliases(self) -> Dict[TypeKey, DataType]:
        """Builds a named alias type for every self-referencing alias."""
        aliases: Dict[TypeKey, DataType] = {}
        for key in self._materialized:
            typedef = self.resolved.table[key]
            target = self.map_reference(key[0], typedef.type, ('type', typedef.id))
            aliases[key] = DataType(key[0], typedef.id, 'alias', target=target,
                                    description=typedef.description,
                                    experimental=typedef.experimental, deprecated=typedef.deprecated)
        return aliases

    def _assemble(self, part: _DomainParts, aliases: Dict[TypeKey, DataType]) -> MappedDomain:
        domain = part.domain
        ordered: List[DataType] = []
        for typedef in domain.types:
            if typedef.id in part.declared:
                ordered.append(part.declared[typedef.id])
            elif (domain.name, typedef.id) in aliases:
                ordered.append(aliases[(domain.name, typedef.id)])
        ordered.extend(part.inline)
        types = sort_types_by_dependencies(ordered, domain.name)
        external = self._external_domains(domain.name, types, part.commands)
        logger.debug("Mapped domain %s: %d types (%d synthesized), %d commands, %d events",
                     domain.name, len(types), len(part.inline), len(part.commands), len(part.events))
        return MappedDomain(domain.name, tuple(types), tuple(part.commands), tuple(part.events),
                            external, domain.description, domain.experimental, domain.deprecated)

    def _external_domains(self, domain: str, types: List[DataType], commands: List[MappedCommand]) -> Tuple[str, ...]:
        used = set()
        descriptors: List[Optional[TypeDescriptor]] = []
        for data_type in types:
            descriptors.extend(f.type for f in data_type.fields)
            descriptors.append(data_type.target)
        for command in commands:
            descriptors.extend(p.type for p in command.parameters)
        for descriptor in descriptors:
            used.update(named.domain for named in iter_named(descriptor) if named.domain != domain)
        return tuple(d.name for d in self.resolved.document.domains if d.name in used)


def map_types(resolved: ResolvedProtocol) -> MappedProtocol:
    """Convenience wrapper around ``TypeMapper``."""
    return TypeMapper(resolved).map_protocol()
