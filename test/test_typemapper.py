"""Test the cdpgen.typemapper module."""

import os
import sys
import unittest

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from cdpgen.dependency_resolver import sort_types_by_dependencies
from cdpgen.errors import NameCollision
from cdpgen.resolver import resolve_references
from cdpgen.schema import load_protocol, parse_protocol
from cdpgen.typemapper import (OPAQUE, CollectionDescriptor, DataType, FieldDescriptor, NamedTypeDescriptor,
                               NameRegistry, PrimitiveDescriptor, map_types)


def protocol_path(name):
    return os.path.join(os.path.dirname(__file__), 'protocol', name)


def map_file(name):
    return map_types(resolve_references(load_protocol(protocol_path(name))))


def map_document(data):
    return map_types(resolve_references(parse_protocol(data)))


class TestTypeDescriptors(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.protocol = map_file('browser_protocol.json')

    def test_field_descriptors(self):
        remote_object = self.protocol.domain('Runtime').data_type('RemoteObject')
        fields = {f.name: f for f in remote_object.fields}
        self.assertEqual(fields['type'].type, NamedTypeDescriptor('Runtime', 'RemoteObjectType', 'enum'))
        self.assertFalse(fields['type'].optional)
        self.assertTrue(fields['subtype'].optional)
        self.assertEqual(fields['className'].type, PrimitiveDescriptor('string'))
        self.assertEqual(fields['value'].type, OPAQUE)
        # RemoteObjectId is an alias of string and expands at the use site
        self.assertEqual(fields['objectId'].type, PrimitiveDescriptor('string'))
        self.assertEqual(fields['preview'].type, NamedTypeDescriptor('Runtime', 'ObjectPreview', 'object'))
        self.assertTrue(fields['preview'].experimental)

    def test_aliases_are_not_emitted(self):
        runtime = self.protocol.domain('Runtime')
        self.assertIsNone(runtime.data_type('RemoteObjectId'))
        self.assertIsNone(runtime.data_type('Timestamp'))
        evaluate = next(c for c in runtime.commands if c.name == 'evaluate')
        self.assertEqual(evaluate.parameters[-1].type, PrimitiveDescriptor('number'))

    def test_collections(self):
        dom = self.protocol.domain('DOM')
        node = dom.data_type('Node')
        fields = {f.name: f for f in node.fields}
        self.assertEqual(fields['children'].type, CollectionDescriptor(NamedTypeDescriptor('DOM', 'Node', 'object')))
        self.assertEqual(fields['attributes'].type, CollectionDescriptor(PrimitiveDescriptor('string')))
        storage = self.protocol.domain('DOMStorage')
        result = storage.data_type('GetDOMStorageItemsResult')
        self.assertEqual(result.fields[0].type,
                         CollectionDescriptor(CollectionDescriptor(PrimitiveDescriptor('string'))))

    def test_untyped_object(self):
        network = self.protocol.domain('Network')
        command = next(c for c in network.commands if c.name == 'setExtraHTTPHeaders')
        self.assertEqual(command.parameters[0].type, PrimitiveDescriptor('object'))

    def test_cross_domain_reference(self):
        dom = self.protocol.domain('DOM')
        result = dom.data_type('ResolveNodeResult')
        self.assertEqual(result.fields[0].type, NamedTypeDescriptor('Runtime', 'RemoteObject', 'object'))
        self.assertEqual(dom.external_domains, ('Runtime',))
        self.assertEqual(self.protocol.domain('Emulation').external_domains, ('DOM',))
        self.assertEqual(self.protocol.domain('Network').external_domains, ('Runtime',))
        self.assertEqual(self.protocol.domain('Animation').external_domains, ())


class TestSynthesizedNames(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.protocol = map_file('browser_protocol.json')

    def names(self, domain):
        return [t.name for t in self.protocol.domain(domain).types]

    def test_inline_enum_naming(self):
        """ Inline enums are named after their owner and member """
        emulation = self.protocol.domain('Emulation')
        policy = emulation.data_type('SetVirtualTimePolicyPolicy')
        self.assertEqual(policy.kind, 'enum')
        self.assertEqual(policy.origin, 'inline')
        self.assertEqual(policy.values, ('advance', 'pause', 'pauseIfNetworkFetchesPending'))
        command = next(c for c in emulation.commands if c.name == 'setVirtualTimePolicy')
        self.assertEqual(command.parameters[0].type,
                         NamedTypeDescriptor('Emulation', 'SetVirtualTimePolicyPolicy', 'enum'))
        self.assertIn('CookieSameSite', self.names('Network'))
        self.assertIn('AnimationType', self.names('Animation'))
        self.assertIn('ConsoleAPICalledType', self.names('Runtime'))

    def test_result_and_event_names(self):
        self.assertIn('EvaluateResult', self.names('Runtime'))
        self.assertIn('ConsoleAPICalled', self.names('Runtime'))
        self.assertIn('GetOuterHTMLResult', self.names('DOM'))
        self.assertIn('SetChildNodes', self.names('DOM'))
        self.assertIn('DomStorageItemsCleared', self.names('DOMStorage'))
        self.assertIn('GetDOMStorageItemsResult', self.names('DOMStorage'))
        self.assertIn('VirtualTimeBudgetExpired', self.names('Emulation'))
        evaluate = next(c for c in self.protocol.domain('Runtime').commands if c.name == 'evaluate')
        self.assertEqual(evaluate.result, NamedTypeDescriptor('Runtime', 'EvaluateResult', 'object'))
        self.assertEqual(self.protocol.domain('Runtime').data_type('EvaluateResult').origin, 'result')

    def test_command_without_returns_has_no_result(self):
        enable = next(c for c in self.protocol.domain('Runtime').commands if c.name == 'enable')
        self.assertIsNone(enable.result)
        self.assertNotIn('EnableResult', self.names('Runtime'))

    def test_event_without_parameters_has_empty_payload(self):
        payload = self.protocol.domain('Emulation').data_type('VirtualTimeBudgetExpired')
        self.assertEqual(payload.origin, 'event')
        self.assertEqual(payload.fields, ())
        self.assertTrue(payload.experimental)

    def test_nested_inline_objects(self):
        network = self.protocol.domain('Network')
        stack = network.data_type('InitiatorStack')
        self.assertEqual(stack.kind, 'object')
        self.assertEqual(stack.fields[1].type,
                         CollectionDescriptor(NamedTypeDescriptor('Network', 'InitiatorStackCallFrames', 'object')))
        frames = network.data_type('InitiatorStackCallFrames')
        self.assertEqual([f.name for f in frames.fields], ['functionName', 'lineNumber'])

    def test_array_item_suffix(self):
        protocol = map_document({'domains': [{'domain': 'Page', 'types': [
            {'id': 'FrameTree', 'type': 'array', 'items': {'type': 'object', 'properties': [
                {'name': 'url', 'type': 'string'}]}}]}]})
        page = protocol.domain('Page')
        self.assertEqual([t.name for t in page.types], ['FrameTreeItem'])

    def test_collision_suffix(self):
        """ A synthesized name that is already taken gets the next free numeric suffix """
        protocol = map_document({'domains': [{'domain': 'Page', 'types': [
            {'id': 'NavigateResult', 'type': 'object', 'properties': [{'name': 'ok', 'type': 'boolean'}]},
            {'id': 'FrameNavigated', 'type': 'string'}], 'commands': [
            {'name': 'navigate', 'returns': [{'name': 'frameId', 'type': 'string'}]}], 'events': [
            {'name': 'frameNavigated', 'parameters': [{'name': 'url', 'type': 'string'}]}]}]})
        page = protocol.domain('Page')
        self.assertEqual(page.commands[0].result.name, 'NavigateResult2')
        self.assertEqual(page.events[0].payload.name, 'FrameNavigated2')
        self.assertIsNotNone(page.data_type('NavigateResult'))

    def test_name_registry_exhaustion(self):
        registry = NameRegistry('Page')
        registry.reserve('Frame')
        for n in range(2, 100):
            self.assertEqual(registry.synthesize('Frame'), f'Frame{n}')
        with self.assertRaises(NameCollision) as context:
            registry.synthesize('Frame')
        self.assertEqual(context.exception.domain, 'Page')

    def test_type_named_like_its_domain(self):
        self.assertIn('Animation', self.names('Animation'))


class TestAliasesAndCycles(unittest.TestCase):

    def test_self_referencing_alias_is_materialized(self):
        protocol = map_file('aliases.json')
        tree = protocol.domain('Tree')
        nested = tree.data_type('NestedList')
        self.assertIsNotNone(nested)
        self.assertEqual(nested.kind, 'alias')
        self.assertEqual(nested.target, CollectionDescriptor(NamedTypeDescriptor('Tree', 'NestedList', 'alias')))
        self.assertIsNone(tree.data_type('Label'))
        self.assertIsNone(tree.data_type('LabelMatrix'))
        result = tree.data_type('GetTreeResult')
        fields = {f.name: f for f in result.fields}
        self.assertEqual(fields['tree'].type, NamedTypeDescriptor('Tree', 'NestedList', 'alias'))
        self.assertEqual(fields['labels'].type,
                         CollectionDescriptor(CollectionDescriptor(PrimitiveDescriptor('string'))))
        self.assertEqual(fields['attributes'].type, PrimitiveDescriptor('object'))
        self.assertTrue(fields['attributes'].optional)
        self.assertEqual([t.name for t in tree.types], ['NestedList', 'GetTreeResult'])

    def test_recursive_alias_maps_to_one_type_at_every_use(self):
        """ Every use of a self-referencing alias gets the named alias, whichever use is mapped first """
        protocol = map_document({'domains': [{'domain': 'Tree', 'types': [
            {'id': 'NestedList', 'type': 'array', 'items': {'$ref': 'NestedList'}}], 'commands': [
            {'name': 'getTree', 'returns': [{'name': 'first', '$ref': 'NestedList'},
                                            {'name': 'second', '$ref': 'NestedList'},
                                            {'name': 'third', 'type': 'array', 'items': {'$ref': 'NestedList'}}]}]}]})
        result = protocol.domain('Tree').data_type('GetTreeResult')
        nested = NamedTypeDescriptor('Tree', 'NestedList', 'alias')
        self.assertEqual(result.fields[0].type, nested)
        self.assertEqual(result.fields[0].type, result.fields[1].type)
        self.assertEqual(result.fields[2].type, CollectionDescriptor(nested))

    def test_mutually_recursive_aliases(self):
        protocol = map_document({'domains': [{'domain': 'Tree', 'types': [
            {'id': 'Forest', 'type': 'array', 'items': {'$ref': 'Grove'}},
            {'id': 'Grove', 'type': 'array', 'items': {'$ref': 'Forest'}},
            {'id': 'Names', 'type': 'array', 'items': {'$ref': 'Forest'}}], 'commands': [
            {'name': 'plant', 'parameters': [{'name': 'grove', '$ref': 'Grove'},
                                             {'name': 'names', '$ref': 'Names'}]}]}]})
        tree = protocol.domain('Tree')
        self.assertEqual(tree.data_type('Forest').target, CollectionDescriptor(NamedTypeDescriptor('Tree', 'Grove', 'alias')))
        self.assertEqual(tree.data_type('Grove').target, CollectionDescriptor(NamedTypeDescriptor('Tree', 'Forest', 'alias')))
        self.assertIsNone(tree.data_type('Names'))
        parameters = tree.commands[0].parameters
        self.assertEqual(parameters[0].type, NamedTypeDescriptor('Tree', 'Grove', 'alias'))
        self.assertEqual(parameters[1].type, CollectionDescriptor(NamedTypeDescriptor('Tree', 'Forest', 'alias')))

    def test_cross_domain_cycle(self):
        """ Mutually referencing types in two domains map without expanding each other """
        protocol = map_file('cyclic.json')
        foo = protocol.domain('Alpha').data_type('Foo')
        bar = protocol.domain('Beta').data_type('Bar')
        self.assertEqual(foo.fields[0].type, NamedTypeDescriptor('Beta', 'Bar', 'object'))
        self.assertEqual(bar.fields[0].type, NamedTypeDescriptor('Alpha', 'Foo', 'object'))
        self.assertEqual(protocol.domain('Alpha').external_domains, ('Beta',))
        self.assertEqual(protocol.domain('Beta').external_domains, ('Alpha',))

    def test_mapping_is_deterministic(self):
        first = map_file('browser_protocol.json')
        second = map_file('browser_protocol.json')
        self.assertEqual(first, second)
        for a, b in zip(first.domains, second.domains):
            self.assertEqual([t.name for t in a.types], [t.name for t in b.types])


class TestDependencyOrder(unittest.TestCase):

    def test_runtime_order(self):
        """ Types come after the types they refer to; cycles break at the first type on the cycle """
        runtime = map_file('browser_protocol.json').domain('Runtime')
        self.assertEqual([t.name for t in runtime.types], [
            'RemoteObjectType', 'RemoteObjectSubtype', 'ConsoleAPICalledType', 'ObjectPreview',
            'RemoteObject', 'PropertyPreview', 'EvaluateResult', 'ConsoleAPICalled'])

    def test_dependencies_come_first(self):
        protocol = map_file('browser_protocol.json')
        for domain in protocol.domains:
            position = {t.name: i for i, t in enumerate(domain.types)}
            for data_type in domain.types:
                for field in data_type.fields:
                    item = field.type
                    if isinstance(item, NamedTypeDescriptor) and item.domain == domain.name \
                            and item.name not in ('ObjectPreview', 'PropertyPreview', 'Node'):
                        self.assertLess(position[item.name], position[data_type.name],
                                        f'{item.name} before {data_type.name}')

    def test_sort_is_stable(self):
        types = [DataType('Page', name, 'object') for name in ('C', 'A', 'B')]
        self.assertEqual([t.name for t in sort_types_by_dependencies(types, 'Page')], ['C', 'A', 'B'])

    def test_sort_orders_dependencies(self):
        a = DataType('Page', 'A', 'object', fields=(FieldDescriptor('b', NamedTypeDescriptor('Page', 'B', 'object')),))
        b = DataType('Page', 'B', 'object', fields=(
            FieldDescriptor('c', CollectionDescriptor(NamedTypeDescriptor('Page', 'C', 'enum'))),))
        c = DataType('Page', 'C', 'enum', values=('x',))
        self.assertEqual([t.name for t in sort_types_by_dependencies([a, b, c], 'Page')], ['C', 'B', 'A'])


if __name__ == '__main__':
    unittest.main()
