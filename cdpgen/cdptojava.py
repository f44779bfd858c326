# pylint: disable=line-too-long

""" Generates Java interfaces and data types from a planned protocol """

import logging
from typing import Dict, List, Optional, Set

from cdpgen.common import doc_lines, enum_symbols, pascal, process_template
from cdpgen.constants import JACKSON_VERSION, JDK_VERSION, MAVEN_COMPILER_VERSION
from cdpgen.planner import DomainPlan, MethodSignature, ProtocolPlan
from cdpgen.typemapper import (CollectionDescriptor, DataType, FieldDescriptor, NamedTypeDescriptor,
                               OpaqueDescriptor, PrimitiveDescriptor, TypeDescriptor)

logger = logging.getLogger(__name__)

ROOT_INTERFACE = 'ChromeDevTools'
SUPPORT_PACKAGE = 'support'
SUPPORT_TYPES = ['ParamName', 'EventName', 'Optional', 'Experimental', 'EventHandler', 'EventListener']
JACKSON_PROPERTY = 'com.fasterxml.jackson.annotation.JsonProperty'

PRIMITIVE_TYPES = {
    'integer': 'Integer',
    'number': 'Double',
    'string': 'String',
    'boolean': 'Boolean',
    'binary': 'String',
}


def is_java_reserved_word(word: str) -> bool:
    """Checks if a word is a Java reserved word"""
    reserved_words = [
        'abstract', 'assert', 'boolean', 'break', 'byte', 'case', 'catch', 'char', 'class', 'const',
        'continue', 'default', 'do', 'double', 'else', 'enum', 'extends', 'final', 'finally', 'float',
        'for', 'goto', 'if', 'implements', 'import', 'instanceof', 'int', 'interface', 'long', 'native',
        'new', 'package', 'private', 'protected', 'public', 'return', 'short', 'static', 'strictfp',
        'super', 'switch', 'synchronized', 'this', 'throw', 'throws', 'transient', 'try', 'void', 'volatile',
        'while', 'true', 'false', 'null', 'record', 'var', 'yield', '_',
    ]
    return word in reserved_words


def java_string(value: str) -> str:
    """Renders a Java string literal"""
    escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n').replace('\r', '\\r')
    return f'"{escaped}"'


def java_doc(text: str) -> List[str]:
    """Description lines safe to put inside a Javadoc comment"""
    # javac decodes unicode escapes before lexing, comments included
    text = text.replace('*/', '*&#47;').replace('\\u', '\\\\u')
    return doc_lines(text) if text.strip() else []


def javadoc(text: str, params: Optional[List[Dict]] = None) -> List[str]:
    """
    Lines of a Javadoc comment, without indentation. Empty if there is nothing to say.

    Args:
        text: The description.
        params: Parameter models with ``name`` and ``doc`` for ``@param`` lines.
    """
    lines = java_doc(text)
    params = [p for p in params or [] if p['doc']]
    if not lines and not params:
        return []
    if len(lines) == 1 and not params:
        return [f"/** {lines[0]} */"]
    result = ['/**'] + [f" * {line}" for line in lines]
    if lines and params:
        result.append(' *')
    for param in params:
        result.append(f" * @param {param['name']} {' '.join(param['doc'])}".rstrip())
    result.append(' */')
    return result


class Scope:
    """Names visible inside the interface of one domain"""

    def __init__(self, package_name: str, domain: str, nested: Set[str]) -> None:
        self.package_name = package_name
        self.domain = domain
        self.nested = nested

    def ref(self, name: str) -> str:
        """A support or java.lang type name, qualified when a nested type shadows it"""
        if name not in self.nested and name != self.domain:
            return name
        if name in SUPPORT_TYPES:
            return f"{self.package_name}.{SUPPORT_PACKAGE}.{name}"
        return f"java.lang.{name}"

    def annotations(self, item, optional: bool = False) -> List[str]:
        """Advisory annotations of a type, field, parameter or method"""
        result = []
        if item.experimental:
            result.append('@' + self.ref('Experimental'))
        if item.deprecated:
            result.append('@' + self.ref('Deprecated'))
        if optional:
            result.append('@' + self.ref('Optional'))
        return result


class CdpToJava:
    """Renders one Java interface per domain, with every data type of the domain nested in it"""

    def __init__(self, package_name: str, jackson_annotation: bool = False) -> None:
        self.package_name = package_name
        self.jackson_annotation = jackson_annotation
        self.source_root = 'src/main/java/' + package_name.replace('.', '/')

    def safe_identifier(self, name: str, class_name: str = '') -> str:
        """Converts a name to a safe Java identifier"""
        if is_java_reserved_word(name):
            return f"_{name}"
        if class_name and name == class_name:
            return f"{name}_"
        return name

    def type_name(self, domain: str, name: str) -> str:
        """The name of a type nested in the interface of ``domain``"""
        return self.safe_identifier(name, domain)

    def java_type(self, descriptor: TypeDescriptor, scope: Scope) -> str:
        """Maps a type descriptor to a Java type, boxed so that every value is nullable"""
        if isinstance(descriptor, CollectionDescriptor):
            return f"java.util.List<{self.java_type(descriptor.item, scope)}>"
        if isinstance(descriptor, NamedTypeDescriptor):
            if descriptor.domain == scope.domain:
                return self.type_name(descriptor.domain, descriptor.name)
            return f"{descriptor.domain}.{self.type_name(descriptor.domain, descriptor.name)}"
        if isinstance(descriptor, OpaqueDescriptor):
            return scope.ref('Object')
        if isinstance(descriptor, PrimitiveDescriptor) and descriptor.kind == 'object':
            return f"java.util.Map<{scope.ref('String')}, {scope.ref('Object')}>"
        if isinstance(descriptor, PrimitiveDescriptor):
            return scope.ref(PRIMITIVE_TYPES[descriptor.kind])
        raise ValueError(f"Unsupported descriptor {descriptor!r}")

    def accessor_suffix(self, field_name: str) -> str:
        suffix = pascal(field_name)
        # getClass() is final on java.lang.Object
        return suffix + '_' if suffix == 'Class' else suffix

    def generate_field(self, field: FieldDescriptor, scope: Scope) -> Dict:
        annotations = scope.annotations(field, field.optional)
        if self.jackson_annotation:
            annotations.append(f"@{self.jackson_property(scope)}({java_string(field.name)})")
        return {
            'name': self.safe_identifier(field.name),
            'type': self.java_type(field.type, scope),
            'accessor': self.accessor_suffix(field.name),
            'javadoc': javadoc(field.description),
            'modifiers': ''.join(a + ' ' for a in annotations),
        }

    def jackson_property(self, scope: Scope) -> str:
        return 'JsonProperty' if 'JsonProperty' not in scope.nested else JACKSON_PROPERTY

    def generate_type(self, data_type: DataType, scope: Scope) -> Dict:
        """Builds the template model of one nested enum, class or alias"""
        model = {
            'kind': data_type.kind,
            'name': self.type_name(data_type.domain, data_type.name),
            'javadoc': javadoc(data_type.description),
            'annotations': scope.annotations(data_type),
        }
        if data_type.kind == 'enum':
            model['constants'] = [{'symbol': symbol, 'literal': java_string(literal)}
                                  for symbol, literal in enum_symbols(data_type.values)]
        elif data_type.kind == 'object':
            model['fields'] = [self.generate_field(f, scope) for f in data_type.fields]
        else:
            target = data_type.target
            item = target.item if isinstance(target, CollectionDescriptor) else target
            model['base'] = f"java.util.ArrayList<{self.java_type(item, scope)}>"
        return model

    def generate_method(self, method: MethodSignature, scope: Scope) -> Dict:
        """Builds the template model of one command method overload"""
        parameters = []
        for parameter in method.parameters:
            annotations = scope.annotations(parameter, parameter.optional)
            annotations.append(f"@{scope.ref('ParamName')}({java_string(parameter.name)})")
            parameters.append({
                'name': self.safe_identifier(parameter.name),
                'type': self.java_type(parameter.type, scope),
                'annotations': ' '.join(annotations),
                'doc': java_doc(parameter.description),
            })
        return {
            'name': self.safe_identifier(method.name),
            'returns': self.java_type(method.returns, scope) if method.returns else 'void',
            'parameter_list': ', '.join(f"{p['annotations']} {p['type']} {p['name']}" for p in parameters),
            'javadoc': javadoc(method.description, parameters),
            'annotations': scope.annotations(method),
        }

    def generate_domain(self, domain_plan: DomainPlan, version: str = '') -> Dict[str, str]:
        """
        Renders the interface of one domain.

        Args:
            domain_plan: The planned domain.
            version: Protocol version for the file header.

        Returns:
            Dict[str, str]: The relative path of the unit mapped to its text.
        """
        domain = domain_plan.domain
        nested = {self.type_name(domain.name, t.name) for t in domain.types}
        scope = Scope(self.package_name, domain.name, nested)
        imports = [f"{self.package_name}.{name}" for name in domain.external_domains]
        imports.extend(f"{self.package_name}.{SUPPORT_PACKAGE}.{name}"
                       for name in SUPPORT_TYPES if scope.ref(name) == name)
        if self.jackson_annotation and self.jackson_property(scope) == 'JsonProperty':
            imports.append(JACKSON_PROPERTY)
        definition = process_template(
            "cdptojava/domain.java.jinja",
            package=self.package_name,
            version=version,
            imports=sorted(imports),
            interface_name=domain.name,
            javadoc=javadoc(domain.description),
            annotations=scope.annotations(domain),
            event_name=scope.ref('EventName'),
            event_handler=scope.ref('EventHandler'),
            event_listener=scope.ref('EventListener'),
            string_type=scope.ref('String'),
            override=scope.ref('Override'),
            jackson_annotation=self.jackson_annotation,
            jackson_property=self.jackson_property(scope),
            types=[self.generate_type(t, scope) for t in domain.types],
            methods=[self.generate_method(m, scope) for m in domain_plan.methods],
            subscriptions=[{
                'name': s.name,
                'event_name': java_string(s.event_name),
                'payload': self.java_type(s.payload, scope),
                'javadoc': javadoc(s.description),
                'annotations': scope.annotations(s),
            } for s in domain_plan.subscriptions])
        logger.debug("Rendered Java interface %s.%s", self.package_name, domain.name)
        return {f"{self.source_root}/{domain.name}.java": definition}

    def generate_support(self, plan: ProtocolPlan) -> Dict[str, str]:
        """Renders the root interface, the support annotations and handler types, and the pom.xml"""
        files: Dict[str, str] = {}
        files[f"{self.source_root}/{ROOT_INTERFACE}.java"] = process_template(
            "cdptojava/root.java.jinja",
            package=self.package_name,
            version=str(plan.protocol.version) if plan.protocol.version else '',
            interface_name=ROOT_INTERFACE,
            domains=[{'name': d.name, 'getter': 'get' + pascal(d.name),
                      'javadoc': javadoc(d.description), 'deprecated': d.deprecated}
                     for d in plan.protocol.domains])
        for name in SUPPORT_TYPES:
            files[f"{self.source_root}/{SUPPORT_PACKAGE}/{name}.java"] = process_template(
                "cdptojava/support.java.jinja", package=f"{self.package_name}.{SUPPORT_PACKAGE}", name=name)
        package_elements = self.package_name.split('.')
        files['pom.xml'] = process_template(
            "cdptojava/pom.xml.jinja",
            groupid='.'.join(package_elements[:-1]) if len(package_elements) > 1 else package_elements[0],
            artifactid=package_elements[-1],
            jdk_version=JDK_VERSION,
            jackson_version=JACKSON_VERSION,
            maven_compiler_version=MAVEN_COMPILER_VERSION,
            jackson_annotation=self.jackson_annotation)
        return files
