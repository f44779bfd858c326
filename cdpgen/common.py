"""
Common utility functions for cdpgen.
"""

# pylint: disable=line-too-long

import os
import re
import shutil
import tempfile
from typing import Dict, List, Tuple

import jinja2

WORD_PATTERN = re.compile(r'[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z]+[0-9]*')


def split_words(string: str) -> List[str]:
    """
    Splits an identifier into words. Handles snake_case, camelCase and PascalCase,
    and keeps runs of capitals (acronyms such as ``DOM`` or ``URL``) together.

    Args:
        string (str): The identifier to split.

    Returns:
        List[str]: The words in order of appearance.
    """
    words = []
    for part in re.split(r'[^a-zA-Z0-9]+', string):
        words.extend(WORD_PATTERN.findall(part))
    return words


def pascal(string: str) -> str:
    """
    Convert a string to PascalCase from snake_case, camelCase, or PascalCase.
    Acronyms keep their capitals; underscores at the beginning of the string are
    preserved, underscores in the middle are removed.

    Args:
        string (str): The string to convert.

    Returns:
        str: The string in PascalCase.
    """
    if not string:
        return string
    startswith_under = string[0] == '_'
    result = ''.join(word[:1].upper() + word[1:] for word in split_words(string))
    if startswith_under:
        result = '_' + result
    return result


def camel(string: str) -> str:
    """
    Convert a string to camelCase from snake_case, camelCase, or PascalCase.

    Args:
        string (str): The string to convert.

    Returns:
        str: The string in camelCase.
    """
    words = split_words(string)
    if not words:
        return string
    return words[0].lower() + ''.join(word[:1].upper() + word[1:] for word in words[1:])


def snake(string: str) -> str:
    """
    Convert a string to snake_case from snake_case, camelCase, or PascalCase.

    Args:
        string (str): The string to convert.

    Returns:
        str: The string in snake_case.
    """
    words = split_words(string)
    if not words:
        return string
    return '_'.join(word.lower() for word in words)


def enum_symbols(literals: Tuple[str, ...]) -> List[Tuple[str, str]]:
    """
    Derives upper-case constant names for enum literals.

    Literals that sanitize to the same constant get a numeric suffix in order of
    appearance, so the result only depends on the literal order.

    Args:
        literals: The enum literals in declared order.

    Returns:
        List[Tuple[str, str]]: ``(symbol, literal)`` pairs.
    """
    pairs: List[Tuple[str, str]] = []
    used: Dict[str, int] = {}
    for literal in literals:
        symbol = '_'.join(word.upper() for word in split_words(literal)) or 'EMPTY'
        if symbol[0].isdigit():
            symbol = '_' + symbol
        if symbol in used:
            used[symbol] += 1
            candidate = f"{symbol}_{used[symbol]}"
            while candidate in used:
                used[symbol] += 1
                candidate = f"{symbol}_{used[symbol]}"
            symbol = candidate
        used.setdefault(symbol, 1)
        pairs.append((symbol, literal))
    return pairs


def doc_lines(text: str, width: int = 96) -> List[str]:
    """Splits a description into trimmed lines no longer than ``width`` characters."""
    lines: List[str] = []
    for paragraph in text.strip().splitlines():
        current = ''
        for word in paragraph.split():
            if current and len(current) + 1 + len(word) > width:
                lines.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        lines.append(current)
    return lines


def process_template(file_path: str, **kvargs) -> str:
    """
    Process a file as a Jinja2 template with the given object as input.

    Args:
        file_path (str): The path to the template, relative to the package directory.

    Returns:
        str: The processed template as a string.
    """
    # Load the template environment
    file_dir = os.path.dirname(__file__)
    template_loader = jinja2.FileSystemLoader(searchpath=file_dir)
    template_env = jinja2.Environment(loader=template_loader, trim_blocks=True,
                                      lstrip_blocks=True, keep_trailing_newline=True)
    template_env.filters['pascal'] = pascal
    template_env.filters['camel'] = camel
    template_env.filters['snake'] = snake
    template_env.filters['doc_lines'] = doc_lines

    # Load the template from the file
    template = template_env.get_template(file_path)

    # Render the template with the object as input
    output = template.render(**kvargs)

    return output


def write_files(output_dir: str, files: Dict[str, str]) -> List[str]:
    """
    Writes rendered units below ``output_dir``.

    Every file is first written into a staging directory inside ``output_dir`` and
    only moved into place once all of them were written, so a failed write leaves
    no generated file behind.

    Args:
        output_dir (str): The output root directory.
        files (Dict[str, str]): Relative file paths mapped to their content.

    Returns:
        List[str]: The paths of the written files, in the order given.
    """
    created = not os.path.exists(output_dir)
    os.makedirs(output_dir, exist_ok=True)
    staging = tempfile.mkdtemp(prefix='.cdpgen-', dir=output_dir)
    try:
        for relative_path, content in files.items():
            staged = os.path.join(staging, relative_path.replace('/', os.sep))
            os.makedirs(os.path.dirname(staged), exist_ok=True)
            with open(staged, 'w', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        shutil.rmtree(staging, ignore_errors=True)
        if created:
            shutil.rmtree(output_dir, ignore_errors=True)
        raise
    written = []
    try:
        for relative_path in files:
            output = os.path.join(output_dir, relative_path.replace('/', os.sep))
            # make sure the directory exists
            os.makedirs(os.path.dirname(output), exist_ok=True)
            os.replace(os.path.join(staging, relative_path.replace('/', os.sep)), output)
            written.append(output)
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    return written
