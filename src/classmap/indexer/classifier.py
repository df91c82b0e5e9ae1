"""Detection of declaration-free ("static") PHP files.

A static file holds only functions, constants or top-level statements. Such
files cannot be reached through a class-name lookup, so when eager inclusion
is enabled they are included once up front instead.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from classmap.indexer.extractor import DECLARATION_KEYWORDS, declared_name, is_relative_name
from classmap.indexer.tokenizer import INLINE, Token

# Statements that only set up names and never execute anything
_HEADER_KEYWORDS: Final[frozenset[str]] = frozenset({"namespace", "use", "declare"})


def _skip_header(tokens: Sequence[Token], index: int) -> int:
    """Return the index of the token that terminates a header statement."""
    opener_ends = tokens[index].kind in ("namespace", "declare")
    depth = 0
    for i in range(index + 1, len(tokens)):
        tok = tokens[i]
        if not tok.is_opaque:
            continue
        if tok.text == "(":
            depth += 1
        elif tok.text == ")":
            depth -= 1
        elif depth == 0 and tok.text == ";":
            return i
        elif depth == 0 and tok.text == "{" and opener_ends:
            # Block bodies of namespace/declare are classified normally
            return i
    return len(tokens)


def is_static_file(tokens: Sequence[Token]) -> bool:
    """Classify a token stream as declaration-free with executable content.

    Args:
        tokens: Token stream of one file.

    Returns:
        True if the file declares no class, interface, trait or enum and
        contains at least one function, constant or statement. Mixed files
        (a type plus functions) are never static.
    """
    has_content = False
    i = 0
    while i < len(tokens):
        tok = tokens[i]

        if tok.kind in DECLARATION_KEYWORDS and declared_name(tokens, i) is not None:
            return False

        if tok.kind in _HEADER_KEYWORDS and not (
            tok.kind == "namespace" and is_relative_name(tokens, i)
        ):
            i = _skip_header(tokens, i) + 1
            continue

        if not (tok.is_trivia or tok.is_opaque or tok.kind == INLINE):
            has_content = True
        i += 1

    return has_content
