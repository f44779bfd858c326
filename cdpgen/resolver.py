"""
Resolves every type reference of a protocol document to a handle on a declared type.

Handles are resolve-by-key: they name a ``(domain, type id)`` pair and dereference
through a shared table in O(1), so cyclic references between domains never get
expanded here.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

from cdpgen.errors import MalformedSchema, UndeclaredDependency, UnresolvedReference
from cdpgen.schema import Domain, Property, ProtocolDocument, TypeDef, TypeReference

logger = logging.getLogger(__name__)

TypeKey = Tuple[str, str]


class TypeTable:
    """Lookup of every declared type keyed by ``(domain name, type id)``."""

    def __init__(self, document: ProtocolDocument) -> None:
        self._types: Dict[TypeKey, TypeDef] = {}
        seen_domains: Dict[str, int] = {}
        for domain_index, domain in enumerate(document.domains):
            if domain.name in seen_domains:
                raise MalformedSchema(f"domains[{domain_index}].domain",
                                      f"domain '{domain.name}' is defined more than once")
            seen_domains[domain.name] = domain_index
            for type_index, typedef in enumerate(domain.types):
                key = (domain.name, typedef.id)
                if key in self._types:
                    raise MalformedSchema(f"domains[{domain_index}].types[{type_index}].id",
                                          f"type '{typedef.id}' is declared more than once in domain '{domain.name}'")
                self._types[key] = typedef
        self.domains = frozenset(seen_domains)

    def __contains__(self, key: TypeKey) -> bool:
        return key in self._types

    def __getitem__(self, key: TypeKey) -> TypeDef:
        return self._types[key]

    def __len__(self) -> int:
        return len(self._types)


@dataclass(frozen=True)
class TypeHandle:
    """A lazy pointer to a declared type. Equality and hashing use the key only."""
    domain: str
    type_id: str
    table: TypeTable = field(compare=False, repr=False)

    @property
    def key(self) -> TypeKey:
        return (self.domain, self.type_id)

    @property
    def typedef(self) -> TypeDef:
        return self.table[self.key]

    @property
    def qualified_name(self) -> str:
        return f"{self.domain}.{self.type_id}"


class ResolvedProtocol:
    """The document plus a handle for every ``$ref`` it contains, keyed by ``(owning domain, ref)``."""

    def __init__(self, document: ProtocolDocument, table: TypeTable,
                 handles: Dict[Tuple[str, str], TypeHandle]) -> None:
        self.document = document
        self.table = table
        self._handles = handles

    def handle(self, domain: str, ref: str) -> TypeHandle:
        """Returns the handle for a reference as written inside ``domain``."""
        return self._handles[(domain, ref)]

    @property
    def reference_count(self) -> int:
        return len(self._handles)


def _split_reference(ref: str) -> Tuple[Optional[str], str]:
    if '.' in ref:
        domain, type_id = ref.rsplit('.', 1)
        return domain, type_id
    return None, ref


def _walk_references(reference: TypeReference, path: str) -> Iterator[Tuple[str, str]]:
    """Yields ``(ref, path)`` for every ``$ref`` inside a type reference, depth first in declared order."""
    if reference.is_reference and reference.ref is not None:
        yield reference.ref, path
    if reference.items is not None:
        yield from _walk_references(reference.items, f"{path}.items")
    for prop in reference.properties or ():
        yield from _walk_references(prop.type, f"{path}.{prop.name}")


def _walk_domain(domain: Domain) -> Iterator[Tuple[str, str]]:
    for typedef in domain.types:
        yield from _walk_references(typedef.type, f"{domain.name}.{typedef.id}")

    def walk_properties(properties: Tuple[Property, ...], path: str) -> Iterator[Tuple[str, str]]:
        for prop in properties:
            yield from _walk_references(prop.type, f"{path}.{prop.name}")

    for command in domain.commands:
        yield from walk_properties(command.parameters, f"{domain.name}.{command.name}")
        yield from walk_properties(command.returns, f"{domain.name}.{command.name}.returns")
    for event in domain.events:
        yield from walk_properties(event.parameters, f"{domain.name}.{event.name}")


class ReferenceResolver:
    """Resolves local and qualified references, enforcing declared domain dependencies."""

    def __init__(self, document: ProtocolDocument) -> None:
        self.document = document

    def resolve(self) -> ResolvedProtocol:
        """
        Resolves every reference of the document.

        Returns:
            ResolvedProtocol: The document together with its reference handles.

        Raises:
            UnresolvedReference: A reference names a type that does not exist.
            UndeclaredDependency: A qualified reference targets a domain missing from ``dependencies``.
        """
        table = TypeTable(self.document)
        handles: Dict[Tuple[str, str], TypeHandle] = {}
        for domain in self.document.domains:
            for dependency in domain.dependencies:
                if dependency not in table.domains:
                    logger.warning("Domain %s declares dependency on unknown domain %s", domain.name, dependency)
            for ref, path in _walk_domain(domain):
                if (domain.name, ref) not in handles:
                    handles[(domain.name, ref)] = self._resolve_one(table, domain, ref, path)
        logger.debug("Resolved %d distinct references against %d types", len(handles), len(table))
        return ResolvedProtocol(self.document, table, handles)

    def _resolve_one(self, table: TypeTable, domain: Domain, ref: str, path: str) -> TypeHandle:
        target_domain, type_id = _split_reference(ref)
        if target_domain is None or target_domain == domain.name:
            target_domain = domain.name
        elif target_domain not in domain.dependencies:
            raise UndeclaredDependency(domain.name, target_domain, context=path)
        if (target_domain, type_id) not in table:
            raise UnresolvedReference(target_domain, type_id, context=path)
        return TypeHandle(target_domain, type_id, table)


def resolve_references(document: ProtocolDocument) -> ResolvedProtocol:
    """Convenience wrapper around ``ReferenceResolver``."""
    return ReferenceResolver(document).resolve()
