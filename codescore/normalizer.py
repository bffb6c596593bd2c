"""Source normalizer: stable line map plus per-language token stream."""

from __future__ import annotations

import ast
import io
import logging
import re
import tokenize
from dataclasses import dataclass
from enum import Enum
from functools import cached_property, lru_cache
from typing import Iterator

from codescore.cancellation import CancellationToken, checkpoint
from codescore.languages import LanguageConfig

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    WORD = "word"
    NUMBER = "number"
    STRING = "string"
    COMMENT = "comment"
    OPERATOR = "operator"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    line: int
    end_line: int


class SourceMap:
    """Normalized view of one submission shared read-only by every detector."""

    def __init__(self, text: str, lines: list[str], language: LanguageConfig,
                 language_key: str | None = None, trailing_newline: bool = False):
        self.text = text
        self.lines = tuple(lines)
        self.language = language
        self.language_key = language_key
        self.trailing_newline = trailing_newline
        # set by the analyzer while detectors run; cancelled once it stops waiting
        self.stop: CancellationToken | None = None

    def check(self) -> None:
        """Raise ReviewCancelled once the analyzer has given up on this review."""
        checkpoint(self.stop, None)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line(self, number: int) -> str:
        """1-based line access."""
        return self.lines[number - 1]

    def iter_tokens(self) -> Iterator[Token]:
        """Lazily tokenize according to the language's lexer."""
        if not self.lines:
            return iter(())
        if self.language.lexer == "python":
            return _python_tokens(self)
        if self.language.lexer == "regex":
            return _regex_tokens(self.text, self.language)
        return _whitespace_tokens(self.lines)

    @cached_property
    def tokens(self) -> tuple[Token, ...]:
        return tuple(self.iter_tokens())

    @cached_property
    def comment_lines(self) -> frozenset[int]:
        lines = set()
        for tok in self.tokens:
            if tok.kind == TokenKind.COMMENT:
                lines.update(range(tok.line, tok.end_line + 1))
        return frozenset(lines)

    @cached_property
    def lines_ending_in_string(self) -> frozenset[int]:
        """Lines whose end-of-line falls inside a multi-line string literal."""
        lines = set()
        for tok in self.tokens:
            if tok.kind == TokenKind.STRING and tok.end_line > tok.line:
                lines.update(range(tok.line, tok.end_line))
        return frozenset(lines)

    @cached_property
    def python_tree(self) -> ast.Module | None:
        """Parsed module for Python sources; None when it does not parse."""
        if self.language.lexer != "python":
            return None
        try:
            return ast.parse(self.text)
        except (SyntaxError, ValueError, RecursionError):
            return None

    def warm(self) -> None:
        """Materialize the cached views before worker threads share them."""
        _ = (self.tokens, self.comment_lines, self.lines_ending_in_string, self.python_tree)


def split_lines(text: str) -> tuple[list[str], bool]:
    """Split text into lines treating \\r\\n, \\r and \\n alike.

    Returns (lines, had_trailing_newline).
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if not text:
        return [], False
    trailing = text.endswith("\n")
    if trailing:
        text = text[:-1]
    return text.split("\n"), trailing


def normalize(text: str, language: LanguageConfig, language_key: str | None = None) -> SourceMap:
    lines, trailing = split_lines(text)
    normalized = "\n".join(lines) + ("\n" if trailing else "")
    return SourceMap(normalized, lines, language, language_key, trailing)


# ============================================================
#  Lexers
# ============================================================

_PY_KINDS = {
    tokenize.NAME: TokenKind.WORD,
    tokenize.NUMBER: TokenKind.NUMBER,
    tokenize.STRING: TokenKind.STRING,
    tokenize.COMMENT: TokenKind.COMMENT,
    tokenize.OP: TokenKind.OPERATOR,
}

# Python 3.12+ splits f-strings into several tokens
_FSTRING_START = getattr(tokenize, "FSTRING_START", None)
_FSTRING_END = getattr(tokenize, "FSTRING_END", None)


def _slice(lines: tuple[str, ...], start: tuple[int, int], end: tuple[int, int]) -> str:
    (srow, scol), (erow, ecol) = start, end
    if srow == erow:
        return lines[srow - 1][scol:ecol]
    parts = [lines[srow - 1][scol:]]
    parts.extend(lines[srow:erow - 1])
    parts.append(lines[erow - 1][:ecol])
    return "\n".join(parts)


def _python_tokens(source: SourceMap) -> Iterator[Token]:
    collected: list[Token] = []
    try:
        fstring_depth = 0
        fstring_start = (0, 0)
        for tok in tokenize.generate_tokens(io.StringIO(source.text).readline):
            if _FSTRING_START is not None and tok.type == _FSTRING_START:
                if fstring_depth == 0:
                    fstring_start = tok.start
                fstring_depth += 1
                continue
            if fstring_depth:
                if tok.type == _FSTRING_END:
                    fstring_depth -= 1
                    if fstring_depth == 0:
                        collected.append(Token(
                            TokenKind.STRING,
                            _slice(source.lines, fstring_start, tok.end),
                            fstring_start[0],
                            tok.end[0],
                        ))
                continue
            kind = _PY_KINDS.get(tok.type)
            if kind is None or tok.start[0] > source.line_count:
                continue
            collected.append(Token(kind, tok.string, tok.start[0], tok.end[0]))
    except (tokenize.TokenError, SyntaxError) as e:
        logger.info(f"Python tokenizer failed ({e}), using generic lexer")
        yield from _regex_tokens(source.text, source.language)
        return
    yield from collected


_NUMBER = r"\d[\w.]*"
_WORD = r"[^\W\d][\w$]*|\$[\w$]*"
_OPERATOR = (
    r"===|!==|>>>=|\*\*=|<<=|>>=|\.\.\.|==|!=|<=|>=|&&|\|\||\+\+|--|->|=>|::"
    r"|\+=|-=|\*=|/=|%=|&=|\|=|\^=|<<|>>|\*\*|[-+*/%=<>!&|^~?:;,.(){}\[\]@#\\]"
)


@lru_cache(maxsize=32)
def _compile_lexer(line_comments: tuple, block_comments: tuple,
                   string_delimiters: tuple, multiline_strings: tuple) -> re.Pattern:
    comments = [
        re.escape(start) + r"[\s\S]*?(?:" + re.escape(end) + r"|\Z)"
        for start, end in block_comments
    ]
    comments += [re.escape(prefix) + r"[^\n]*" for prefix in line_comments]

    strings = []
    for q in sorted(multiline_strings, key=len, reverse=True):
        eq = re.escape(q)
        strings.append(eq + r"(?:\\[\s\S]|(?!" + eq + r")[^\\])*(?:" + eq + r"|\Z)")
    for q in string_delimiters:
        eq = re.escape(q)
        strings.append(eq + r"(?:\\.|[^\\\n" + eq + r"])*(?:" + eq + r")?")

    groups = []
    if comments:
        groups.append("(?P<comment>" + "|".join(comments) + ")")
    if strings:
        groups.append("(?P<string>" + "|".join(strings) + ")")
    groups += [
        "(?P<number>" + _NUMBER + ")",
        "(?P<word>" + _WORD + ")",
        "(?P<operator>" + _OPERATOR + ")",
        r"(?P<space>\s+)",
        r"(?P<other>\S)",
    ]
    return re.compile("|".join(groups))


def _lexer_pattern(language: LanguageConfig) -> re.Pattern:
    return _compile_lexer(
        tuple(language.line_comments),
        tuple(tuple(pair) for pair in language.block_comments),
        tuple(language.string_delimiters),
        tuple(language.multiline_strings),
    )


# JavaScript-style /regex/flags: a character class may hold an unescaped '/'
_REGEX_LITERAL = re.compile(r"/(?![/*])(?:\\.|\[(?:\\.|[^\]\\\n])*\]|[^/\\\n\[])+/[A-Za-z]*")
# a '/' after one of these never opens a regex literal
_DIVISION_AFTER = frozenset({")", "]", "}", "<", "++", "--"})
_REGEX_AFTER_WORDS = frozenset({
    "return", "typeof", "case", "do", "else", "in", "of", "new", "delete",
    "void", "throw", "instanceof", "yield", "await",
})


def _regex_allowed(previous: Token | None) -> bool:
    if previous is None:
        return True
    if previous.kind == TokenKind.OPERATOR:
        return previous.text not in _DIVISION_AFTER
    return previous.kind == TokenKind.WORD and previous.text in _REGEX_AFTER_WORDS


def _regex_tokens(text: str, language: LanguageConfig) -> Iterator[Token]:
    pattern = _lexer_pattern(language)
    line, pos, previous = 1, 0, None
    while pos < len(text):
        m = None
        if language.regex_literals and text[pos] == "/" and _regex_allowed(previous):
            m = _REGEX_LITERAL.match(text, pos)
        if m is not None:
            group = "string"
        else:
            m = pattern.match(text, pos)
            group = m.lastgroup
        value = m.group()
        pos = m.end()
        newlines = value.count("\n")
        if group != "space":
            kind = TokenKind.OPERATOR if group == "other" else TokenKind(group)
            token = Token(kind, value, line, line + newlines)
            if token.kind != TokenKind.COMMENT:
                previous = token
            yield token
        line += newlines


def _whitespace_tokens(lines: tuple[str, ...]) -> Iterator[Token]:
    for number, text in enumerate(lines, start=1):
        for word in text.split():
            yield Token(TokenKind.WORD, word, number, number)
