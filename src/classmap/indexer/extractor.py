"""Namespace-aware extraction of type declarations from a PHP token stream.

The extractor is a single forward pass over the flat token list produced by
:mod:`classmap.indexer.tokenizer`. It keeps just enough state to qualify
declared names: the current namespace (and the brace depth at which a
bracketed namespace block started), the active ``use`` aliases, the brace
depth, and whether the scan is inside a class-like body.

Two lookbacks rule out false positives for declaration keywords:

* ``new class { ... }`` is an anonymous class expression, and
* ``Foo::class`` is a class-name constant, not a declaration.

Lookahead helpers only read ahead; the main loop still visits every token so
that brace counting stays exact.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final

from classmap.indexer.tokenizer import DOUBLE_COLON, NAME, SOFT_KEYWORDS, Token

NAMESPACE_SEPARATOR: Final = "\\"

DECLARATION_KEYWORDS: Final[frozenset[str]] = frozenset({"class", "interface", "trait", "enum"})


@dataclass(frozen=True, slots=True)
class FileSymbols:
    """Symbols found in one file.

    Attributes:
        declarations: Fully-qualified names of declared classes, interfaces,
            traits and enums, in source order without duplicates.
        aliases: Import aliases seen outside class bodies, mapping the local
            name to the imported fully-qualified name.
    """

    declarations: tuple[str, ...] = ()
    aliases: dict[str, str] = field(default_factory=dict)


@dataclass
class ScopeState:
    """Mutable scanner state for one pass over a file."""

    namespace: str = ""
    namespace_scope_depth: int = 0
    brace_depth: int = 0
    declaration_depth: int = 0
    pending_body: bool = False
    aliases: dict[str, str] = field(default_factory=dict)

    @property
    def in_declaration_body(self) -> bool:
        return self.declaration_depth > 0 or self.pending_body

    def reset_namespace(self, namespace: str = "") -> None:
        self.namespace = namespace
        self.namespace_scope_depth = 0
        self.aliases = {}


def qualify(namespace: str, name: str) -> str:
    """Join a namespace and a simple name."""
    return f"{namespace}{NAMESPACE_SEPARATOR}{name}" if namespace else name


def previous_significant(tokens: Sequence[Token], index: int) -> Token | None:
    """Return the nearest token before index that is not whitespace or a comment."""
    for i in range(index - 1, -1, -1):
        if not tokens[i].is_trivia:
            return tokens[i]
    return None


def next_significant_index(tokens: Sequence[Token], index: int) -> int | None:
    """Return the position of the nearest non-trivia token after index."""
    for i in range(index + 1, len(tokens)):
        if not tokens[i].is_trivia:
            return i
    return None


def next_significant(tokens: Sequence[Token], index: int) -> Token | None:
    """Return the nearest token after index that is not whitespace or a comment."""
    i = next_significant_index(tokens, index)
    return None if i is None else tokens[i]


def is_anonymous(tokens: Sequence[Token], index: int) -> bool:
    """True for the ``class`` keyword of ``new class (...) {...}``."""
    if tokens[index].kind != "class":
        return False
    prev = previous_significant(tokens, index)
    return prev is not None and prev.kind == "new"


def is_class_constant(tokens: Sequence[Token], index: int) -> bool:
    """True when the keyword at index follows ``::`` (``Foo::class``)."""
    prev = previous_significant(tokens, index)
    return prev is not None and prev.kind == DOUBLE_COLON


def declared_name(tokens: Sequence[Token], index: int) -> str | None:
    """Return the simple name declared by the keyword at index, if any.

    Args:
        tokens: Token stream of one file.
        index: Position of a class/interface/trait/enum keyword.

    Returns:
        The declared name, or None for anonymous classes, ``::class``
        references and declarations with no name.
    """
    if tokens[index].kind not in DECLARATION_KEYWORDS:
        return None
    if is_anonymous(tokens, index) or is_class_constant(tokens, index):
        return None
    following = next_significant(tokens, index)
    if following is None or following.kind != NAME:
        return None
    return following.text.strip(NAMESPACE_SEPARATOR) or None


def is_relative_name(tokens: Sequence[Token], index: int) -> bool:
    """True for ``namespace\\foo()``, the relative-name operator."""
    if index + 1 >= len(tokens):
        return False
    tok, following = tokens[index], tokens[index + 1]
    return (
        following.kind == NAME
        and following.text.startswith(NAMESPACE_SEPARATOR)
        and following.position == tok.position + len(tok.text)
    )


def read_namespace(tokens: Sequence[Token], index: int) -> tuple[str, str | None]:
    """Read the name following a ``namespace`` keyword.

    Returns:
        The namespace name (separators trimmed) and the terminator that
        ended it: ``";"``, ``"{"`` or None when the statement is malformed.
    """
    parts: list[str] = []
    for tok in tokens[index + 1 :]:
        if tok.is_trivia:
            continue
        if tok.is_opaque:
            if tok.text in (";", "{"):
                return "".join(parts).strip(NAMESPACE_SEPARATOR), tok.text
            continue
        if tok.kind != NAME and tok.kind not in SOFT_KEYWORDS:
            break
        parts.append(tok.text)
    return "".join(parts).strip(NAMESPACE_SEPARATOR), None


def read_imports(tokens: Sequence[Token], index: int) -> dict[str, str]:
    """Read the aliases introduced by a ``use`` statement.

    Handles ``use A\\B;``, ``use A\\B as C;``, comma lists and group imports
    (``use A\\{B, C as D};``). A closure binding (``use ($x)``) yields nothing.

    Returns:
        Mapping of alias to imported fully-qualified name.
    """
    aliases: dict[str, str] = {}
    prefix = ""
    current = ""
    in_group = False

    def flush(name: str, alias: str | None = None) -> None:
        if not name.strip(NAMESPACE_SEPARATOR):
            return
        full = (prefix + name if in_group else name).strip(NAMESPACE_SEPARATOR)
        aliases[alias or full.rsplit(NAMESPACE_SEPARATOR, 1)[-1]] = full

    i = index + 1
    while i < len(tokens):
        tok = tokens[i]
        if tok.is_trivia:
            i += 1
            continue

        if tok.is_opaque:
            if tok.text == ";":
                break
            if tok.text == "(" and not current and not aliases and not in_group:
                return {}
            if tok.text == "{" and not in_group:
                in_group, prefix, current = True, current, ""
            elif tok.text in (",", "}"):
                flush(current)
                current = ""
                if tok.text == "}":
                    in_group = False
            i += 1
            continue

        if tok.kind == NAME:
            current += tok.text
        elif tok.kind == "as":
            alias_at = next_significant_index(tokens, i)
            if alias_at is not None and tokens[alias_at].kind == NAME:
                flush(current, tokens[alias_at].text)
                current = ""
                i = alias_at
        elif tok.kind not in ("function", "const"):
            break
        i += 1

    flush(current)
    return aliases


class SymbolExtractor:
    """Extracts fully-qualified declaration names from PHP tokens.

    Usage::

        symbols = SymbolExtractor().extract(tokenize(source))
        symbols.declarations  # ("App\\Models\\User", ...)
    """

    def extract(self, tokens: Sequence[Token]) -> FileSymbols:
        """Run one pass over a file's tokens.

        Args:
            tokens: Output of :func:`classmap.indexer.tokenizer.tokenize`.

        Returns:
            The declarations and aliases found in the file.
        """
        state = ScopeState()
        declarations: dict[str, None] = {}
        seen_aliases: dict[str, str] = {}

        for i, tok in enumerate(tokens):
            if tok.is_opaque:
                self._on_structural(state, tok.text)
                continue

            if tok.kind == "namespace":
                if is_relative_name(tokens, i):
                    continue
                name, terminator = read_namespace(tokens, i)
                state.reset_namespace(name)
                if terminator == "{":
                    state.namespace_scope_depth = state.brace_depth + 1
                continue

            if tok.kind == "use":
                if not state.in_declaration_body:
                    imports = read_imports(tokens, i)
                    state.aliases.update(imports)
                    seen_aliases.update(imports)
                continue

            if tok.kind in DECLARATION_KEYWORDS:
                if is_class_constant(tokens, i):
                    continue
                if is_anonymous(tokens, i):
                    state.pending_body = state.declaration_depth == 0
                    continue
                name = declared_name(tokens, i)
                if name is None:
                    continue
                declarations[qualify(state.namespace, name)] = None
                if state.declaration_depth == 0:
                    state.pending_body = True

        return FileSymbols(declarations=tuple(declarations), aliases=seen_aliases)

    @staticmethod
    def _on_structural(state: ScopeState, char: str) -> None:
        if char == "{":
            state.brace_depth += 1
            if state.pending_body:
                state.declaration_depth = state.brace_depth
                state.pending_body = False
        elif char == "}":
            state.brace_depth -= 1
            if state.declaration_depth and state.brace_depth < state.declaration_depth:
                state.declaration_depth = 0
            if state.namespace_scope_depth and state.brace_depth < state.namespace_scope_depth:
                state.reset_namespace()
