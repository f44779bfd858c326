"""
Overload planning: turns the parameter lists of commands and events into method signatures.

The planner is a pure function of the mapped model. It never reorders parameters;
a required parameter after an optional one is rejected.
"""

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cdpgen.common import pascal
from cdpgen.errors import NonTrailingOptionalParameter
from cdpgen.typemapper import (FieldDescriptor, MappedCommand, MappedDomain, MappedEvent,
                               MappedProtocol, NamedTypeDescriptor)

logger = logging.getLogger(__name__)


class OverloadPolicy(enum.Enum):
    """How optional trailing parameters become methods."""
    TIERED = 'tiered'
    """no optional: one method; one optional: two methods; more: one method with every parameter"""
    FULL = 'full'
    """always one method with every parameter, optionals individually nullable"""


@dataclass(frozen=True)
class MethodSignature:
    """One generated command method."""
    name: str
    parameters: Tuple[FieldDescriptor, ...]
    returns: Optional[NamedTypeDescriptor]
    description: str = ''
    experimental: bool = False
    deprecated: bool = False

    @property
    def required_parameters(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(p for p in self.parameters if not p.optional)

    @property
    def optional_parameters(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(p for p in self.parameters if p.optional)


@dataclass(frozen=True)
class EventSubscription:
    """The subscription method for one event, ``on<Event>(handler) -> listener``."""
    name: str
    event_name: str
    payload: NamedTypeDescriptor
    description: str = ''
    experimental: bool = False
    deprecated: bool = False


@dataclass(frozen=True)
class DomainPlan:
    domain: MappedDomain
    methods: Tuple[MethodSignature, ...]
    subscriptions: Tuple[EventSubscription, ...]


@dataclass(frozen=True)
class ProtocolPlan:
    protocol: MappedProtocol
    domains: Tuple[DomainPlan, ...]
    policy: OverloadPolicy


def check_trailing_optionals(domain: str, member: str, parameters: Tuple[FieldDescriptor, ...]) -> None:
    """Raises ``NonTrailingOptionalParameter`` if a required parameter follows an optional one."""
    seen_optional = False
    for parameter in parameters:
        if parameter.optional:
            seen_optional = True
        elif seen_optional:
            raise NonTrailingOptionalParameter(domain, member, parameter.name)


def plan_command(domain: str, command: MappedCommand,
                 policy: OverloadPolicy = OverloadPolicy.TIERED) -> List[MethodSignature]:
    """
    Plans the methods for one command.

    Args:
        domain: Name of the owning domain.
        command: The mapped command.
        policy: The overload policy of the target.

    Returns:
        List[MethodSignature]: The signatures, shortest first.

    Raises:
        NonTrailingOptionalParameter: An optional parameter precedes a required one.
    """
    check_trailing_optionals(domain, command.name, command.parameters)
    required = tuple(p for p in command.parameters if not p.optional)
    optional_count = len(command.parameters) - len(required)

    def signature(parameters: Tuple[FieldDescriptor, ...]) -> MethodSignature:
        return MethodSignature(command.name, parameters, command.result, command.description,
                               command.experimental, command.deprecated)

    if policy == OverloadPolicy.TIERED and optional_count == 1:
        return [signature(required), signature(command.parameters)]
    return [signature(command.parameters)]


def plan_event(domain: str, event: MappedEvent) -> EventSubscription:
    """Plans the subscription method of an event. Event parameters must also be trailing-optional."""
    check_trailing_optionals(domain, event.name, event.parameters)
    return EventSubscription('on' + pascal(event.name), event.name, event.payload,
                             event.description, event.experimental, event.deprecated)


def plan_domain(domain: MappedDomain, policy: OverloadPolicy = OverloadPolicy.TIERED) -> DomainPlan:
    methods: List[MethodSignature] = []
    for command in domain.commands:
        methods.extend(plan_command(domain.name, command, policy))
    subscriptions = [plan_event(domain.name, event) for event in domain.events]
    logger.debug("Planned domain %s: %d methods for %d commands, %d subscriptions",
                 domain.name, len(methods), len(domain.commands), len(subscriptions))
    return DomainPlan(domain, tuple(methods), tuple(subscriptions))


def plan_protocol(protocol: MappedProtocol, policy: OverloadPolicy = OverloadPolicy.TIERED) -> ProtocolPlan:
    """Plans every domain of a mapped protocol in declared order."""
    return ProtocolPlan(protocol, tuple(plan_domain(d, policy) for d in protocol.domains), policy)
