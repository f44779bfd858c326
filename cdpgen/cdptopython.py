"""Generates Python protocol classes and data classes from a planned protocol"""

# pylint: disable=line-too-long

import json
import logging
from typing import Dict, List

from cdpgen.common import doc_lines, enum_symbols, process_template, snake
from cdpgen.planner import DomainPlan, MethodSignature, ProtocolPlan
from cdpgen.typemapper import (CollectionDescriptor, DataType, FieldDescriptor, NamedTypeDescriptor,
                               OpaqueDescriptor, PrimitiveDescriptor, TypeDescriptor)

logger = logging.getLogger(__name__)

ROOT_PROTOCOL = 'ChromeDevTools'

PRIMITIVE_TYPES = {
    'integer': 'int',
    'number': 'float',
    'string': 'str',
    'boolean': 'bool',
    'binary': 'str',
    'object': 'typing.Dict[str, typing.Any]',
}


def is_python_reserved_word(word: str) -> bool:
    """Checks if a word is a Python reserved word"""
    reserved_words = [
        'False', 'None', 'True', 'and', 'as', 'assert', 'async', 'await',
        'break', 'class', 'continue', 'def', 'del', 'elif', 'else', 'except',
        'finally', 'for', 'from', 'global', 'if', 'import', 'in', 'is',
        'lambda', 'nonlocal', 'not', 'or', 'pass', 'raise', 'return',
        'try', 'while', 'with', 'yield', 'self', 'cls',
        # module names the generated code refers to from class bodies
        'dataclasses', 'enum', 'typing',
    ]
    return word in reserved_words


def py_doc(text: str) -> List[str]:
    """Description lines safe to put inside a docstring"""
    text = text.replace('\\', '\\\\').replace('"', '\\"')
    return doc_lines(text) if text.strip() else []


def advisory_lines(item) -> List[str]:
    lines = []
    if item.experimental:
        lines.append('Experimental.')
    if item.deprecated:
        lines.append('Deprecated.')
    return lines


class CdpToPython:
    """Renders one Python module per domain with enums, data classes and a typing.Protocol interface"""

    def __init__(self, package_name: str) -> None:
        self.package_name = package_name
        self.source_root = 'src/' + package_name.replace('.', '/')

    def safe_name(self, name: str, class_name: str = '') -> str:
        """Converts a name to a safe Python name"""
        if is_python_reserved_word(name):
            return name + "_"
        if class_name and name == class_name:
            return name + "_"
        return name

    def module_name(self, domain: str) -> str:
        """The module of a domain within the generated package"""
        return self.safe_name(snake(domain))

    def type_name(self, domain: str, name: str) -> str:
        return self.safe_name(name, domain)

    def python_type(self, descriptor: TypeDescriptor, domain: str, quoted: bool = False) -> str:
        """
        Maps a type descriptor to a Python type annotation.

        Args:
            descriptor: The descriptor to map.
            domain: The domain whose module the annotation goes into.
            quoted: Quote named types, for expressions evaluated at import time.
        """
        if isinstance(descriptor, CollectionDescriptor):
            return f"typing.List[{self.python_type(descriptor.item, domain, quoted)}]"
        if isinstance(descriptor, NamedTypeDescriptor):
            name = self.type_name(descriptor.domain, descriptor.name)
            if descriptor.domain != domain:
                name = f"{self.module_name(descriptor.domain)}.{name}"
            return f'"{name}"' if quoted else name
        if isinstance(descriptor, OpaqueDescriptor):
            return 'typing.Any'
        if isinstance(descriptor, PrimitiveDescriptor):
            return PRIMITIVE_TYPES[descriptor.kind]
        raise ValueError(f"Unsupported descriptor {descriptor!r}")

    def generate_field(self, field: FieldDescriptor, domain: str) -> Dict:
        field_type = self.python_type(field.type, domain)
        if field.optional:
            field_type = f"typing.Optional[{field_type}]"
        metadata = f"metadata={{\"wire\": {json.dumps(field.name)}}}"
        return {
            'name': self.safe_name(field.name),
            'type': field_type,
            'default': f"dataclasses.field(default=None, {metadata})" if field.optional else f"dataclasses.field({metadata})",
            'docstring': py_doc(field.description) + advisory_lines(field),
        }

    def generate_type(self, data_type: DataType) -> Dict:
        """Builds the template model of one enum, data class or alias"""
        model = {
            'kind': data_type.kind,
            'name': self.type_name(data_type.domain, data_type.name),
            'docstring': py_doc(data_type.description) + advisory_lines(data_type),
        }
        if data_type.kind == 'enum':
            model['symbols'] = [{'symbol': symbol, 'literal': json.dumps(literal)}
                                for symbol, literal in enum_symbols(data_type.values)]
        elif data_type.kind == 'object':
            model['fields'] = [self.generate_field(f, data_type.domain) for f in data_type.fields]
        else:
            model['target'] = self.python_type(data_type.target, data_type.domain, quoted=True)
        return model

    def generate_method(self, method: MethodSignature, domain: str) -> Dict:
        """Builds the template model of a command method: required parameters positional, optionals keyword-only"""
        parameters = []
        keyword_only = False
        for parameter in method.parameters:
            name = self.safe_name(parameter.name)
            parameter_type = self.python_type(parameter.type, domain)
            if parameter.optional:
                if not keyword_only:
                    parameters.append('*')
                    keyword_only = True
                parameters.append(f"{name}: typing.Optional[{parameter_type}] = None")
            else:
                parameters.append(f"{name}: {parameter_type}")
        returns = self.python_type(method.returns, domain) if method.returns else 'None'
        return {
            'name': self.safe_name(method.name),
            'parameter_list': ', '.join(['self'] + parameters),
            'returns': returns,
            'docstring': py_doc(method.description) + advisory_lines(method),
            'args': [{'name': self.safe_name(p.name),
                      'doc': ' '.join(py_doc(p.description) + advisory_lines(p) + (['Optional.'] if p.optional else []))}
                     for p in method.parameters],
        }

    def generate_domain(self, domain_plan: DomainPlan, version: str = '') -> Dict[str, str]:
        """
        Renders the module of one domain.

        Args:
            domain_plan: The planned domain.
            version: Protocol version for the file header.

        Returns:
            Dict[str, str]: The relative path of the module mapped to its text.
        """
        domain = domain_plan.domain
        module = self.module_name(domain.name)
        definition = process_template(
            "cdptopython/domain.py.jinja",
            version=version,
            interface_name=domain.name,
            docstring=py_doc(domain.description) + advisory_lines(domain),
            external_modules=[self.module_name(name) for name in domain.external_domains],
            types=[self.generate_type(t) for t in domain.types],
            methods=[self.generate_method(m, domain.name) for m in domain_plan.methods],
            subscriptions=[{
                'name': self.safe_name(s.name),
                'event_name': s.event_name,
                'payload': self.python_type(s.payload, domain.name),
                'docstring': py_doc(s.description) + advisory_lines(s),
            } for s in domain_plan.subscriptions])
        logger.debug("Rendered Python module %s.%s", self.package_name, module)
        return {f"{self.source_root}/{module}.py": definition}

    def generate_support(self, plan: ProtocolPlan) -> Dict[str, str]:
        """Renders the package __init__ with the root protocol, the _support module and pyproject.toml"""
        files: Dict[str, str] = {}
        version = str(plan.protocol.version) if plan.protocol.version else ''
        files[f"{self.source_root}/__init__.py"] = process_template(
            "cdptopython/init.py.jinja",
            version=version,
            root_name=ROOT_PROTOCOL,
            exports=[ROOT_PROTOCOL, 'PROTOCOL_VERSION'] + [self.module_name(d.name) for d in plan.protocol.domains],
            domains=[{'name': d.name, 'module': self.module_name(d.name),
                      'attribute': self.safe_name(d.name)} for d in plan.protocol.domains])
        files[f"{self.source_root}/_support.py"] = process_template("cdptopython/support.py.jinja")
        files['pyproject.toml'] = process_template(
            "cdptopython/pyproject_toml.jinja",
            project_name=self.package_name.replace('_', '-').replace('.', '-'),
            description=f"Protocol bindings{' for protocol version ' + version if version else ''}",
            package_root=self.package_name.split('.')[0])
        return files

