"""Patches for Python findings. Each one re-parses the original snapshot."""

from __future__ import annotations

import ast

from codescore.detectors.python import (
    NONE_COMPARISON,
    LoopCandidate,
    body_on_def_line,
    comprehension_candidates,
    header_close,
    iter_functions,
    returns_value,
    single_line_header,
)
from codescore.fixes.buffer import LineBuffer
from codescore.fixes.patches import Patch
from codescore.models import Finding

PYTHON = frozenset({"python"})


def _parse(buffer: LineBuffer) -> ast.Module | None:
    try:
        return ast.parse(buffer.text)
    except (SyntaxError, ValueError, RecursionError):
        return None


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def _enclosing_function(tree: ast.Module, line: int):
    best = None
    for func in iter_functions(tree):
        if func.lineno <= line <= (func.end_lineno or func.lineno):
            if best is None or func.lineno >= best.lineno:
                best = func
    return best


class InitializeUnboundPatch(Patch):
    """Binds each possibly-unbound name to None at the top of the function body."""

    rule_id = "PY-UNBOUND-VARIABLE"
    languages = PYTHON

    def apply(self, buffer: LineBuffer, finding: Finding) -> bool:
        tree = _parse(buffer)
        if tree is None or not finding.symbols:
            return False
        func = _enclosing_function(tree, finding.line)
        if func is None or body_on_def_line(func):
            return False

        body = func.body
        docstring = _is_docstring(body[0])
        if docstring and len(body) > 1 and body[1].lineno == body[0].end_lineno:
            return False
        if docstring:
            target = body[0].end_lineno
        else:
            # a decorated def or class starts at its first decorator
            target = min([body[0].lineno, *(d.lineno for d in getattr(body[0], "decorator_list", ()))])
        indent = _indent_of(buffer.line(body[0].lineno))

        # Another finding in the same function may already have added the line
        existing = buffer.inserted_after(target) if docstring else buffer.inserted_before(target)
        lines = [f"{indent}{name} = None" for name in finding.symbols]
        lines = [line for line in lines if line not in existing]
        if not lines:
            return True
        if docstring:
            buffer.insert_after(target, lines)
        else:
            buffer.insert_before(target, lines)
        return True


def _segment(text: str, node: ast.expr, *, wrap: tuple = ()) -> str:
    segment = ast.get_source_segment(text, node)
    if segment is None or "\n" in segment:
        segment = ast.unparse(node)
    if isinstance(node, ast.Tuple) and isinstance(node, wrap):
        # unparse always parenthesizes tuples
        return ast.unparse(node)
    if isinstance(node, wrap):
        return f"({segment})"
    return segment


_WRAP_ITER = (ast.IfExp, ast.Lambda, ast.NamedExpr, ast.Tuple)
_WRAP_COND = (ast.IfExp, ast.Lambda, ast.NamedExpr)


def render_comprehension(text: str, candidate: LoopCandidate) -> str:
    """``[elt for target in iter if cond]`` rebuilt from the loop's own source."""
    elt = _segment(text, candidate.elt)
    target = _segment(text, candidate.loop.target)
    iterable = _segment(text, candidate.loop.iter, wrap=_WRAP_ITER)
    comprehension = f"[{elt} for {target} in {iterable}"
    if candidate.cond is not None:
        comprehension += f" if {_segment(text, candidate.cond, wrap=_WRAP_COND)}"
    return comprehension + "]"


class ComprehensionPatch(Patch):
    rule_id = "PY-PREFER-COMPREHENSION"
    languages = PYTHON

    def apply(self, buffer: LineBuffer, finding: Finding) -> bool:
        tree = _parse(buffer)
        if tree is None:
            return False
        candidate = next(
            (c for c in comprehension_candidates(tree) if c.loop.lineno == finding.line), None
        )
        if candidate is None:
            return False

        start, end = candidate.assign.lineno, candidate.loop.end_lineno or candidate.loop.lineno
        first, last = buffer.line(start), buffer.line(end)
        # ast offsets are UTF-8 byte offsets
        if first.encode()[: candidate.assign.col_offset].decode(errors="ignore").strip():
            return False
        if last.encode()[candidate.loop.end_col_offset:].decode(errors="ignore").strip():
            return False
        if any("#" in buffer.line(n) for n in range(start, end + 1)):
            return False

        new_line = f"{_indent_of(first)}{candidate.var} = {render_comprehension(buffer.text, candidate)}"
        limit = buffer.language.max_line_length if buffer.language else 99
        if len(new_line) > limit:
            return False
        buffer.replace(start, end, [new_line])
        return True


class ReturnNonePatch(Patch):
    rule_id = "PY-MISSING-RETURN-TYPE"
    languages = PYTHON

    def apply(self, buffer: LineBuffer, finding: Finding) -> bool:
        tree = _parse(buffer)
        if tree is None:
            return False
        func = next(
            (f for f in iter_functions(tree) if f.lineno == finding.line and f.returns is None), None
        )
        if func is None or returns_value(func) or not single_line_header(func, buffer.original):
            return False
        line = buffer.line(func.lineno)
        close = header_close(line)
        if close is None:
            return False
        paren, colon = close
        buffer.replace(func.lineno, func.lineno, [f"{line[: paren + 1]} -> None{line[colon:]}"])
        return True


def _is_operator(match) -> str:
    return " is None" if match.group(1) == "==" else " is not None"


class NoneComparisonPatch(Patch):
    rule_id = "PY-NONE-COMPARISON"
    languages = PYTHON

    def apply(self, buffer: LineBuffer, finding: Finding) -> bool:
        line = buffer.line(finding.line)
        rewritten, count = NONE_COMPARISON.subn(_is_operator, line)
        if not count:
            return False
        buffer.replace(finding.line, finding.line, [rewritten])
        return True


PYTHON_PATCHES = (
    InitializeUnboundPatch,
    ComprehensionPatch,
    ReturnNonePatch,
    NoneComparisonPatch,
)
