"""
Runs the compilation pipeline: load, resolve, map, plan and emit.

Everything is rendered in memory first. Files are only written once every domain
has been emitted, so a failing run leaves the output directory untouched.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from cdpgen.cdptojava import CdpToJava
from cdpgen.cdptopython import CdpToPython
from cdpgen.common import write_files
from cdpgen.errors import CompilationCancelled
from cdpgen.planner import OverloadPolicy, ProtocolPlan, plan_protocol
from cdpgen.resolver import resolve_references
from cdpgen.schema import ProtocolDocument, load_protocol
from cdpgen.typemapper import map_types

logger = logging.getLogger(__name__)

TARGETS = ['java', 'python']
DEFAULT_OVERLOADS = {
    'java': OverloadPolicy.TIERED,
    'python': OverloadPolicy.FULL,
}

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class ProtocolSummary:
    """Counts reported by ``check_protocol``."""
    version: str
    domains: int
    types: int
    synthesized_types: int
    commands: int
    methods: int
    events: int

    def __str__(self) -> str:
        return (f"protocol {self.version or '(unversioned)'}: {self.domains} domains, "
                f"{self.types} types ({self.synthesized_types} synthesized), "
                f"{self.commands} commands ({self.methods} methods), {self.events} events")


def default_package_name(input_paths: Union[str, Sequence[str]]) -> str:
    """Derives a package name from the first input file name"""
    first = input_paths if isinstance(input_paths, str) else input_paths[0]
    return os.path.splitext(os.path.basename(first))[0].replace('-', '_').replace(' ', '_').lower()


def plan_document(document: ProtocolDocument,
                  overloads: Union[OverloadPolicy, str] = OverloadPolicy.TIERED) -> ProtocolPlan:
    """Resolves, maps and plans a document. Raises the first ``CompilationError`` found."""
    resolved = resolve_references(document)
    mapped = map_types(resolved)
    return plan_protocol(mapped, OverloadPolicy(overloads))


def compile_document(document: ProtocolDocument, target: str = 'java', package_name: str = 'protocol',
                     overloads: Union[OverloadPolicy, str, None] = None, jackson_annotation: bool = False,
                     cancel_check: Optional[CancelCheck] = None) -> Dict[str, str]:
    """
    Compiles a document in memory.

    Args:
        document: The parsed protocol document.
        target: ``java`` or ``python``.
        package_name: Java package or Python package of the generated code.
        overloads: Overload policy. Defaults to the target's policy.
        jackson_annotation: Add Jackson annotations to Java enums and classes.
        cancel_check: Called once before each domain is emitted; returning True cancels the run.

    Returns:
        Dict[str, str]: Relative output paths mapped to their text, in emission order.

    Raises:
        CompilationError: The document cannot be compiled.
        ValueError: Unknown target, or an overload policy the target cannot express.
    """
    if target not in TARGETS:
        raise ValueError(f"Unknown target '{target}', expected one of {', '.join(TARGETS)}")
    policy = DEFAULT_OVERLOADS[target] if overloads is None else OverloadPolicy(overloads)
    if target == 'python' and policy is not OverloadPolicy.FULL:
        # a Python class keeps only the last def of a name
        raise ValueError(f"Target 'python' supports only the '{OverloadPolicy.FULL.value}' overload policy")
    plan = plan_document(document, policy)
    if target == 'java':
        emitter: Union[CdpToJava, CdpToPython] = CdpToJava(package_name, jackson_annotation)
    else:
        emitter = CdpToPython(package_name)
    version = str(document.version) if document.version else ''
    files: Dict[str, str] = {}
    for domain_plan in plan.domains:
        if cancel_check is not None and cancel_check():
            raise CompilationCancelled(domain_plan.domain.name)
        files.update(emitter.generate_domain(domain_plan, version))
    files.update(emitter.generate_support(plan))
    logger.debug("Compiled %d domains into %d files for target %s", len(plan.domains), len(files), target)
    return files


def compile_protocol(input_paths: Union[str, Sequence[str]], output_dir: str, target: str = 'java',
                     package_name: str = '', overloads: Union[OverloadPolicy, str, None] = None,
                     jackson_annotation: bool = False, cancel_check: Optional[CancelCheck] = None) -> List[str]:
    """
    Compiles one or more protocol files into bindings below ``output_dir``.

    Nothing is written unless every domain compiles.

    Returns:
        List[str]: The paths of the written files.
    """
    if not package_name:
        package_name = default_package_name(input_paths)
    document = load_protocol(input_paths)
    files = compile_document(document, target, package_name, overloads, jackson_annotation, cancel_check)
    written = write_files(output_dir, files)
    logger.info("Wrote %d files to %s", len(written), output_dir)
    return written


def convert_cdp_to_java(input_paths, output_dir, package_name='', overloads='tiered', jackson_annotation=False):
    """Compiles protocol files into Java interfaces and data types"""
    return compile_protocol(input_paths, output_dir, 'java', package_name, overloads, jackson_annotation)


def convert_cdp_to_python(input_paths, output_dir, package_name=''):
    """Compiles protocol files into a Python package"""
    return compile_protocol(input_paths, output_dir, 'python', package_name)


def check_protocol(input_paths: Union[str, Sequence[str]], overloads: Union[OverloadPolicy, str] = 'tiered') -> ProtocolSummary:
    """
    Runs every stage except rendering and reports what would be generated.

    Raises:
        CompilationError: The document cannot be compiled.
    """
    document = load_protocol(input_paths)
    plan = plan_document(document, overloads)
    domains = plan.protocol.domains
    summary = ProtocolSummary(
        version=str(document.version) if document.version else '',
        domains=len(domains),
        types=sum(len(d.types) for d in domains),
        synthesized_types=sum(1 for d in domains for t in d.types if t.origin != 'declared'),
        commands=sum(len(d.commands) for d in domains),
        methods=sum(len(p.methods) for p in plan.domains),
        events=sum(len(d.events) for d in domains))
    print(summary)
    return summary
