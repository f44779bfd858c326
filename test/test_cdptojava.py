"""Test the cdpgen.cdptojava module."""

import os
import shutil
import subprocess
import sys
import tempfile
import unittest

import pytest

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from cdpgen.cdptojava import is_java_reserved_word, javadoc
from cdpgen.compiler import compile_document, compile_protocol, convert_cdp_to_java
from cdpgen.errors import CompilationCancelled, UndeclaredDependency
from cdpgen.schema import load_protocol


def protocol_path(name):
    return os.path.join(os.path.dirname(__file__), 'protocol', name)


def clean_output(name):
    java_path = os.path.join(tempfile.gettempdir(), "cdpgen", name)
    if os.path.exists(java_path):
        shutil.rmtree(java_path, ignore_errors=True)
    return java_path


def compile_java(java_path):
    sources = []
    for root, _, files in os.walk(os.path.join(java_path, "src")):
        sources.extend(os.path.join(root, f) for f in files if f.endswith(".java"))
    classes = os.path.join(java_path, "classes")
    os.makedirs(classes, exist_ok=True)
    return subprocess.check_call(["javac", "-d", classes] + sorted(sources), stdout=sys.stdout, stderr=sys.stderr)


class TestCdpToJava(unittest.TestCase):

    def test_storage_scenario(self):
        """ Test the interface generated for a single-command, single-event domain """
        files = compile_document(load_protocol(protocol_path("storage.json")), "java", "org.example.cdp")
        storage = files["src/main/java/org/example/cdp/Storage.java"]
        assert storage.startswith("// Generated by cdpgen from protocol version 1.3. Do not edit.\npackage org.example.cdp;")
        assert "public interface Storage {" in storage
        assert "void clear(@ParamName(\"storageId\") String storageId);" in storage
        assert "@EventName(\"itemsCleared\")" in storage
        assert "EventListener onItemsCleared(EventHandler<ItemsCleared> eventListener);" in storage
        assert "class ItemsCleared {" in storage
        assert "import org.example.cdp.support.ParamName;" in storage
        root = files["src/main/java/org/example/cdp/ChromeDevTools.java"]
        assert "Storage getStorage();" in root
        assert "src/main/java/org/example/cdp/support/EventListener.java" in files
        assert "pom.xml" in files

    def test_overloads(self):
        files = compile_document(load_protocol(protocol_path("browser_protocol.json")), "java", "cdp")
        heap = files["src/main/java/cdp/HeapProfiler.java"]
        assert "    void takeHeapSnapshot();" in heap
        assert "void takeHeapSnapshot(@Optional @ParamName(\"reportProgress\") Boolean reportProgress);" in heap
        assert "GetObjectByHeapObjectIdResult getObjectByHeapObjectId(@ParamName(\"objectId\") String objectId);" in heap
        assert "@Experimental\npublic interface HeapProfiler {" in heap
        dom = files["src/main/java/cdp/DOM.java"]
        self.assertEqual(dom.count(" describeNode("), 1)
        assert "@Optional @ParamName(\"objectId\") String objectId" in dom
        assert "@Experimental @Optional @ParamName(\"pierce\") Boolean pierce" in dom

    def test_full_overload_policy(self):
        files = compile_document(load_protocol(protocol_path("browser_protocol.json")), "java", "cdp", overloads="full")
        heap = files["src/main/java/cdp/HeapProfiler.java"]
        self.assertEqual(heap.count(" takeHeapSnapshot("), 1)

    def test_types(self):
        files = compile_document(load_protocol(protocol_path("browser_protocol.json")), "java", "cdp")
        runtime = files["src/main/java/cdp/Runtime.java"]
        assert "enum RemoteObjectType {" in runtime
        assert "OBJECT(\"object\")," in runtime
        assert "BIGINT(\"bigint\");" in runtime
        assert "@Optional private RemoteObjectSubtype subtype;" in runtime
        assert "private Object value;" in runtime
        assert "public String getClassName() {" in runtime
        assert "EvaluateResult evaluate(@ParamName(\"expression\") String expression" in runtime
        network = files["src/main/java/cdp/Network.java"]
        assert "private java.util.List<Cookie> cookies;" in network
        assert "private java.util.Map<String, Object> headers;" in network
        assert "private Runtime.RemoteObject result;" in network
        assert "import cdp.Runtime;" in network
        emulation = files["src/main/java/cdp/Emulation.java"]
        assert "@Optional @ParamName(\"color\") DOM.RGBA color" in emulation
        assert "PAUSE_IF_NETWORK_FETCHES_PENDING(\"pauseIfNetworkFetchesPending\")" in emulation
        dom = files["src/main/java/cdp/DOM.java"]
        assert "@Deprecated\n    GetOuterHTMLResult getOuterHTML(" in dom

    def test_type_named_like_its_interface(self):
        files = compile_document(load_protocol(protocol_path("browser_protocol.json")), "java", "cdp")
        animation = files["src/main/java/cdp/Animation.java"]
        assert "class Animation_ {" in animation
        assert "EventListener onAnimationStarted(EventHandler<AnimationStarted> eventListener);" in animation
        assert "private Animation_ animation;" in animation

    def test_self_referencing_alias(self):
        files = compile_document(load_protocol(protocol_path("aliases.json")), "java", "tree")
        tree = files["src/main/java/tree/Tree.java"]
        assert "class NestedList extends java.util.ArrayList<NestedList> {" in tree
        assert "private NestedList tree;" in tree
        assert "private java.util.List<java.util.List<String>> labels;" in tree

    def test_jackson_annotation(self):
        files = compile_document(load_protocol(protocol_path("browser_protocol.json")), "java", "cdp",
                                 jackson_annotation=True)
        runtime = files["src/main/java/cdp/Runtime.java"]
        assert "import com.fasterxml.jackson.annotation.JsonProperty;" in runtime
        assert "@JsonProperty(\"object\")" in runtime
        assert "@JsonProperty(\"className\") private String className;" in runtime
        assert "<artifactId>jackson-annotations</artifactId>" in files["pom.xml"]

    def test_output_is_deterministic(self):
        document = load_protocol(protocol_path("browser_protocol.json"))
        first = compile_document(document, "java", "cdp")
        second = compile_document(load_protocol(protocol_path("browser_protocol.json")), "java", "cdp")
        self.assertEqual(list(first.keys()), list(second.keys()))
        self.assertEqual(first, second)

    def test_undeclared_dependency_writes_nothing(self):
        java_path = clean_output("undeclared-java")
        with self.assertRaises(UndeclaredDependency):
            convert_cdp_to_java(protocol_path("undeclared.json"), java_path, package_name="undeclared")
        assert not os.path.exists(java_path)

    def test_cancel_writes_nothing(self):
        java_path = clean_output("cancelled-java")
        calls = []

        def cancel_after_first():
            calls.append(1)
            return len(calls) > 1

        with self.assertRaises(CompilationCancelled) as context:
            compile_protocol(protocol_path("browser_protocol.json"), java_path, "java", "cdp",
                             cancel_check=cancel_after_first)
        self.assertEqual(context.exception.domain, "DOM")
        assert not os.path.exists(java_path)

    def test_write_files(self):
        java_path = clean_output("storage-java")
        written = convert_cdp_to_java(protocol_path("storage.json"), java_path)
        assert os.path.join(java_path, "src", "main", "java", "storage", "Storage.java") in written
        assert os.path.exists(os.path.join(java_path, "pom.xml"))

    @pytest.mark.skipif(shutil.which("javac") is None, reason="javac is not installed")
    def test_compile_browser_protocol(self):
        """ Test that the generated interfaces compile """
        java_path = clean_output("browser-java")
        convert_cdp_to_java(protocol_path("browser_protocol.json"), java_path, package_name="org.example.cdp")
        assert compile_java(java_path) == 0

    @pytest.mark.skipif(shutil.which("javac") is None, reason="javac is not installed")
    def test_compile_cyclic_and_aliases(self):
        java_path = clean_output("cyclic-java")
        convert_cdp_to_java([protocol_path("cyclic.json"), protocol_path("aliases.json")], java_path,
                            package_name="cyclic")
        assert compile_java(java_path) == 0


class TestJavaHelpers(unittest.TestCase):

    def test_reserved_words(self):
        assert is_java_reserved_word("class")
        assert is_java_reserved_word("var")
        assert not is_java_reserved_word("Class")

    def test_javadoc(self):
        self.assertEqual(javadoc(""), [])
        self.assertEqual(javadoc("Short."), ["/** Short. */"])
        self.assertEqual(javadoc("Ends a */ comment"), ["/** Ends a *&#47; comment */"])
        lines = javadoc("Does things.", [{"name": "x", "doc": ["The x."]}])
        self.assertEqual(lines, ["/**", " * Does things.", " *", " * @param x The x.", " */"])


if __name__ == '__main__':
    unittest.main()
