"""
Compilation errors raised by the cdpgen pipeline.

All errors are fatal to a compilation run. None of them is retried, since the
input is static text and a retry would reproduce the same error.
"""

from typing import Optional


class CompilationError(Exception):
    """
    Base class for every error raised while compiling a protocol document.

    Attributes:
        message: Human-readable error description
        context: Optional location of the error (domain, type, command or document path)
        cause: Optional underlying exception that caused this error
    """

    def __init__(self, message: str, context: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        self.message = message
        self.context = context
        self.cause = cause
        full_message = message
        if context:
            full_message = f"{message} (context: {context})"
        super().__init__(full_message)


class MalformedSchema(CompilationError):
    """
    The input document is structurally invalid.

    Attributes:
        path: Location of the offending node within the document, e.g. ``domains[2].commands[0].name``
    """

    def __init__(self, path: str, message: str, cause: Optional[Exception] = None) -> None:
        self.path = path
        super().__init__(f"Malformed schema at {path}: {message}", context=path, cause=cause)


class UnresolvedReference(CompilationError):
    """A type reference names a type that does not exist in the target domain."""

    def __init__(self, domain: str, type_id: str, context: Optional[str] = None) -> None:
        self.domain = domain
        self.type_id = type_id
        super().__init__(f"Unresolved type reference {domain}.{type_id}", context=context)


class UndeclaredDependency(CompilationError):
    """A qualified reference crosses into a domain not listed in ``dependencies``."""

    def __init__(self, from_domain: str, to_domain: str, context: Optional[str] = None) -> None:
        self.from_domain = from_domain
        self.to_domain = to_domain
        super().__init__(
            f"Domain {from_domain} references domain {to_domain} without declaring it as a dependency",
            context=context)


class NonTrailingOptionalParameter(CompilationError):
    """A command or event declares an optional parameter followed by a required one."""

    def __init__(self, domain: str, member: str, parameter: str) -> None:
        self.domain = domain
        self.member = member
        self.parameter = parameter
        super().__init__(
            f"Required parameter '{parameter}' follows an optional parameter",
            context=f"{domain}.{member}")


class NameCollision(CompilationError):
    """A synthesized type name could not be disambiguated within its domain."""

    def __init__(self, domain: str, name: str) -> None:
        self.domain = domain
        self.name = name
        super().__init__(f"Unable to synthesize a unique type name for '{name}'", context=domain)


class CompilationCancelled(CompilationError):
    """The host cancelled the run between two domain emission steps."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__("Compilation cancelled", context=domain)
