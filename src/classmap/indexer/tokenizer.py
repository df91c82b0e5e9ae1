"""Lexical tokenization of PHP sources on top of the pygments PHP lexer.

The extractor only needs a flat token stream, so the lexer output is folded
into a small vocabulary of kinds. Structural punctuation is emitted one
character at a time with no kind at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from pygments.lexers.php import PhpLexer
from pygments.token import Token as PygmentsToken

from classmap.exceptions import PerFileScanError

WHITESPACE: Final = "whitespace"
COMMENT: Final = "comment"
NAME: Final = "name"
VARIABLE: Final = "variable"
DOUBLE_COLON: Final = "double_colon"
OPERATOR: Final = "operator"
INLINE: Final = "inline"
LITERAL: Final = "literal"
OTHER: Final = "other"

KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "namespace",
        "use",
        "as",
        "class",
        "interface",
        "trait",
        "enum",
        "new",
        "function",
        "const",
        "declare",
    }
)

TRIVIA: Final[frozenset[str]] = frozenset({WHITESPACE, COMMENT})

# Keywords that are also valid identifiers (`namespace Enum;`, `new Enum()`)
SOFT_KEYWORDS: Final[frozenset[str]] = frozenset({"enum"})

_STRUCTURAL: Final[frozenset[str]] = frozenset("{}()[];,")

_Name = PygmentsToken.Name
# Name subtypes that can never be a (soft) keyword in this position
_NON_KEYWORD_NAMES: Final = (
    _Name.Variable,
    _Name.Attribute,
    _Name.Function,
    _Name.Class,
    _Name.Constant,
    _Name.Decorator,
)


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexical token.

    Attributes:
        kind: Token kind, a lowercased keyword, or None for opaque
            single-character structural tokens.
        text: Source text of the token.
        position: Character offset of the token in the source.
    """

    kind: str | None
    text: str
    position: int

    @property
    def is_opaque(self) -> bool:
        return self.kind is None

    @property
    def is_trivia(self) -> bool:
        return self.kind in TRIVIA


_lexer: PhpLexer | None = None


def _get_lexer() -> PhpLexer:
    global _lexer
    if _lexer is None:
        # Builtin-function highlighting only renames Name tokens; skip it
        _lexer = PhpLexer(funcnamehighlighting=False)
    return _lexer


def read_source(path: Path) -> str:
    """Read a source file as text.

    Raises:
        PerFileScanError: If the file cannot be read.
    """
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise PerFileScanError(f"Cannot read {path}: {exc}", path) from exc
    if b"\x00" in content:
        # Binary content; nothing to tokenize
        return ""
    return content.decode("utf-8", errors="replace")


def tokenize(source: str) -> list[Token]:
    """Turn PHP source text into a flat list of tokens.

    Never raises: text the lexer cannot handle yields an empty list.

    Args:
        source: File content.

    Returns:
        Tokens in source order.
    """
    if not source or "\x00" in source:
        return []
    if not source.endswith("\n"):
        # Line comments are only terminated by a newline
        source += "\n"

    tokens: list[Token] = []
    try:
        for position, ttype, value in _get_lexer().get_tokens_unprocessed(source):
            if not value:
                continue
            tokens.extend(_convert(position, ttype, value))
    except Exception:  # noqa: BLE001
        return []
    return _demote_soft_keywords(tokens)


def _demote_soft_keywords(tokens: list[Token]) -> list[Token]:
    """Turn soft keywords back into names unless a declared name follows."""
    for i, tok in enumerate(tokens):
        if tok.kind not in SOFT_KEYWORDS:
            continue
        following = next((t for t in tokens[i + 1 :] if not t.is_trivia), None)
        if following is None or following.kind not in (NAME, *SOFT_KEYWORDS):
            tokens[i] = Token(NAME, tok.text, tok.position)
    return tokens


def _convert(position: int, ttype: Any, value: str) -> list[Token]:
    """Map one lexer token onto one or more classmap tokens."""
    if ttype in PygmentsToken.Punctuation or ttype in PygmentsToken.Error:
        return [
            Token(None if ch in _STRUCTURAL else OTHER, ch, position + offset)
            for offset, ch in enumerate(value)
        ]
    return [Token(_kind_of(ttype, value), value, position)]


def _kind_of(ttype: Any, value: str) -> str:
    if ttype in PygmentsToken.Text.Whitespace or (ttype is PygmentsToken.Text and value.isspace()):
        return WHITESPACE
    if ttype in PygmentsToken.Comment.Preproc or ttype is PygmentsToken.Other:
        # Open/close tags and inline HTML
        return INLINE
    if ttype in PygmentsToken.Comment or ttype in PygmentsToken.String.Doc:
        return COMMENT
    if ttype in PygmentsToken.Keyword or (
        ttype in _Name and not any(ttype in sub for sub in _NON_KEYWORD_NAMES)
    ):
        lowered = value.lower()
        if lowered in KEYWORDS:
            return lowered
        if ttype in PygmentsToken.Keyword:
            return OTHER
    if ttype in _Name.Variable:
        return VARIABLE
    if ttype in _Name:
        return NAME
    if ttype in PygmentsToken.Operator:
        return DOUBLE_COLON if value == "::" else OPERATOR
    if ttype in PygmentsToken.Literal:
        return LITERAL
    return OTHER
