"""Python detectors built on the stdlib ``ast`` module.

The unbound-variable analysis and the comprehension matcher are also used by
the Python patches, so both live here as plain functions.
"""

from __future__ import annotations

import ast
import io
import re
import tokenize
from dataclasses import dataclass

from codescore.detectors.base import SECURITY, SYNTAX, Detector
from codescore.models import Finding, MetricName, Severity
from codescore.normalizer import SourceMap

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)
_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Lambda)
_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)
_TRY = (ast.Try, getattr(ast, "TryStar", ast.Try))


class PythonDetector(Detector):
    languages = frozenset({"python"})

    def inspect(self, source: SourceMap) -> list[Finding]:
        tree = source.python_tree
        if tree is None:
            return []
        return self.inspect_tree(tree, source)

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        raise NotImplementedError


# ============================================================
#  AST helpers
# ============================================================

def dotted_name(node: ast.AST) -> str | None:
    """'os.path.join' for an attribute chain, None for anything else."""
    parts = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def iter_functions(tree: ast.AST):
    for node in ast.walk(tree):
        if isinstance(node, _FUNCTIONS):
            yield node


def scope_nodes(body: list[ast.stmt]):
    """Nodes evaluated in the scope owning ``body`` (nested scopes are not entered)."""
    stack = list(reversed(body))
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, _FUNCTIONS):
            stack.extend(node.decorator_list)
            stack.extend(node.args.defaults)
            stack.extend(d for d in node.args.kw_defaults if d is not None)
            continue
        if isinstance(node, ast.ClassDef):
            stack.extend(node.decorator_list)
            stack.extend(node.bases)
            stack.extend(k.value for k in node.keywords)
            continue
        if isinstance(node, ast.Lambda):
            stack.extend(node.args.defaults)
            continue
        if isinstance(node, _COMPREHENSIONS):
            stack.append(node.generators[0].iter)
            continue
        stack.extend(reversed(list(ast.iter_child_nodes(node))))


def target_names(node: ast.AST) -> set[str]:
    return {n.id for n in ast.walk(node) if isinstance(n, ast.Name)}


def is_trivial(func: ast.AST) -> bool:
    """A body spanning fewer than two lines."""
    first, last = func.body[0], func.body[-1]
    return (last.end_lineno or last.lineno) - first.lineno + 1 < 2


def body_on_def_line(func: ast.AST) -> bool:
    return func.body[0].lineno == func.lineno


# ============================================================
#  Syntax
# ============================================================

class SyntaxErrorDetector(Detector):
    rule_id = "PY-SYNTAX-ERROR"
    severity = Severity.ERROR
    categories = (MetricName.ACCURACY,)
    tags = frozenset({SYNTAX})
    languages = frozenset({"python"})

    def inspect(self, source: SourceMap) -> list[Finding]:
        if source.python_tree is not None:
            return []
        try:
            compile(source.text, source.language.name, "exec", ast.PyCF_ONLY_AST)
        except SyntaxError as e:
            return [self.finding(e.lineno or 1, f"Syntax error: {e.msg}.")]
        except (ValueError, RecursionError) as e:
            return [self.finding(1, f"Source could not be parsed: {e}.")]
        return []


# ============================================================
#  Possibly-unbound locals
# ============================================================

def _loads(node: ast.AST, bound: frozenset = frozenset()):
    """Name loads evaluated in the current scope, minus comprehension variables."""
    if isinstance(node, ast.Name):
        if isinstance(node.ctx, ast.Load) and node.id not in bound:
            yield node
        return
    if isinstance(node, ast.Lambda):
        for default in node.args.defaults:
            yield from _loads(default, bound)
        return
    if isinstance(node, _COMPREHENSIONS):
        inner = set(bound)
        for gen in node.generators:
            yield from _loads(gen.iter, frozenset(inner))
            inner |= target_names(gen.target)
            for cond in gen.ifs:
                yield from _loads(cond, frozenset(inner))
        results = [node.key, node.value] if isinstance(node, ast.DictComp) else [node.elt]
        for result in results:
            yield from _loads(result, frozenset(inner))
        return
    for child in ast.iter_child_nodes(node):
        yield from _loads(child, bound)


def _walrus_names(node: ast.AST) -> set[str]:
    return {n.target.id for n in ast.walk(node) if isinstance(n, ast.NamedExpr)}


def local_names(func: ast.AST) -> set[str]:
    """Names bound anywhere in the function's own scope, minus global/nonlocal ones."""
    names, declared = set(), set()
    for node in scope_nodes(func.body):
        if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            names.add(node.id)
        elif isinstance(node, (*_FUNCTIONS, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            names.update((a.asname or a.name).split(".")[0] for a in node.names if a.name != "*")
        elif isinstance(node, ast.ExceptHandler) and node.name:
            names.add(node.name)
        elif isinstance(node, (ast.Global, ast.Nonlocal)):
            declared.update(node.names)
        elif isinstance(node, ast.MatchAs) and node.name:
            names.add(node.name)
        elif isinstance(node, ast.MatchStar) and node.name:
            names.add(node.name)
        elif isinstance(node, ast.MatchMapping) and node.rest:
            names.add(node.rest)
    return names - declared


def _arguments(func: ast.AST) -> set[str]:
    args = func.args
    every = [*args.posonlyargs, *args.args, *args.kwonlyargs]
    every += [a for a in (args.vararg, args.kwarg) if a is not None]
    return {a.arg for a in every}


def _bound_names(node: ast.AST) -> set[str]:
    return {
        n.id for n in ast.walk(node)
        if isinstance(n, ast.Name) and isinstance(n.ctx, (ast.Store, ast.Del))
    }


def _always_true(test: ast.expr) -> bool:
    return isinstance(test, ast.Constant) and bool(test.value)


def _def_time_expressions(stmt: ast.stmt) -> list[ast.expr]:
    """Expressions a def/class statement evaluates in the enclosing scope."""
    if isinstance(stmt, ast.ClassDef):
        return [*stmt.decorator_list, *stmt.bases, *(k.value for k in stmt.keywords)]
    args = stmt.args
    return [*stmt.decorator_list, *args.defaults, *(d for d in args.kw_defaults if d is not None)]


class _UnboundScan:
    """Forward walk tracking which locals are definitely assigned."""

    def __init__(self, locals_: set[str]):
        self.locals = locals_
        self.hits: dict[str, int] = {}  # name -> first line
        self.breaks: list[list[set[str]]] = []  # assigned-sets at each break, per enclosing loop

    def hit(self, name: str, line: int) -> None:
        if line < self.hits.get(name, line + 1):
            self.hits[name] = line

    def check(self, node: ast.AST | None, defined: set[str]) -> None:
        if node is None:
            return
        for name in _loads(node):
            if name.id in self.locals and name.id not in defined:
                self.hit(name.id, name.lineno)

    def block(self, stmts: list[ast.stmt], defined: set[str]) -> tuple[set[str], bool]:
        """Returns (names definitely assigned afterwards, whether the block always exits early)."""
        defined = set(defined)
        for stmt in stmts:
            defined, exits = self.statement(stmt, defined)
            if exits:
                return defined, True
        return defined, False

    def loop_body(self, stmts: list[ast.stmt], defined: set[str]) -> list[set[str]]:
        self.breaks.append([])
        self.block(stmts, defined)
        return self.breaks.pop()

    def statement(self, stmt: ast.stmt, defined: set[str]) -> tuple[set[str], bool]:
        if isinstance(stmt, ast.If):
            self.check(stmt.test, defined)
            defined = defined | _walrus_names(stmt.test)
            body, body_exits = self.block(stmt.body, defined)
            orelse, else_exits = self.block(stmt.orelse, defined)
            if body_exits and else_exits:
                return defined, True
            if body_exits:
                return orelse, False
            if else_exits:
                return body, False
            return body & orelse, False

        if isinstance(stmt, (ast.For, ast.AsyncFor)):
            self.check(stmt.iter, defined)
            defined = defined | _walrus_names(stmt.iter)
            self.check(stmt.target, defined)
            self.loop_body(stmt.body, defined | _bound_names(stmt.target))
            self.block(stmt.orelse, defined)
            return defined, False

        if isinstance(stmt, ast.While):
            self.check(stmt.test, defined)
            defined = defined | _walrus_names(stmt.test)
            breaks = self.loop_body(stmt.body, defined)
            if _always_true(stmt.test) and not stmt.orelse:
                # Only a break leaves the loop
                if not breaks:
                    return defined, True
                return set.intersection(*breaks), False
            self.block(stmt.orelse, defined)
            return defined, False

        if isinstance(stmt, (ast.With, ast.AsyncWith)):
            for item in stmt.items:
                self.check(item.context_expr, defined)
                defined = defined | _walrus_names(item.context_expr)
                if item.optional_vars is not None:
                    self.check(item.optional_vars, defined)
                    defined = defined | _bound_names(item.optional_vars)
            return self.block(stmt.body, defined)

        if isinstance(stmt, _TRY):
            return self._try(stmt, defined)

        if isinstance(stmt, ast.Match):
            self.check(stmt.subject, defined)
            for case in stmt.cases:
                captured = {
                    n.name for n in ast.walk(case.pattern)
                    if isinstance(n, (ast.MatchAs, ast.MatchStar)) and n.name
                }
                self.check(case.guard, defined | captured)
                self.block(case.body, defined | captured)
            return defined, False

        if isinstance(stmt, (ast.Return, ast.Raise)):
            self.check(stmt, defined)
            return defined, True

        if isinstance(stmt, ast.Break):
            if self.breaks:
                self.breaks[-1].append(set(defined))
            return defined, True

        if isinstance(stmt, ast.Continue):
            return defined, True

        if isinstance(stmt, (*_FUNCTIONS, ast.ClassDef)):
            for expr in _def_time_expressions(stmt):
                self.check(expr, defined)
            return defined | {stmt.name}, False

        if isinstance(stmt, ast.Assign):
            self.check(stmt.value, defined)
            for target in stmt.targets:
                self.check(target, defined)
            assigned = set().union(*map(_bound_names, stmt.targets))
            return defined | _walrus_names(stmt.value) | assigned, False

        if isinstance(stmt, ast.AugAssign):
            self.check(stmt.value, defined)
            if isinstance(stmt.target, ast.Name):
                if stmt.target.id in self.locals and stmt.target.id not in defined:
                    self.hit(stmt.target.id, stmt.lineno)
                return defined | {stmt.target.id}, False
            self.check(stmt.target, defined)
            return defined, False

        if isinstance(stmt, ast.AnnAssign):
            if stmt.value is None:
                return defined, False
            self.check(stmt.value, defined)
            return defined | _bound_names(stmt.target), False

        if isinstance(stmt, ast.Delete):
            for target in stmt.targets:
                self.check(target, defined)
            return defined - set().union(*map(_bound_names, stmt.targets)), False

        if isinstance(stmt, (ast.Import, ast.ImportFrom)):
            bound = {(a.asname or a.name).split(".")[0] for a in stmt.names if a.name != "*"}
            return defined | bound, False

        if isinstance(stmt, (ast.Global, ast.Nonlocal)):
            return defined, False

        self.check(stmt, defined)
        return defined | _walrus_names(stmt), False

    def _try(self, stmt: ast.Try, defined: set[str]) -> tuple[set[str], bool]:
        body, body_exits = self.block(stmt.body, defined)
        outcomes = []
        for handler in stmt.handlers:
            self.check(handler.type, defined)
            caught = {handler.name} if handler.name else set()
            after, exits = self.block(handler.body, defined | caught)
            if not exits:
                outcomes.append(after - caught)
        if not body_exits:
            orelse, else_exits = self.block(stmt.orelse, body)
            if not else_exits:
                outcomes.append(orelse)
        final, final_exits = self.block(stmt.finalbody, defined)
        if not outcomes:
            return final, True
        return set.intersection(*outcomes) | final, final_exits


def possibly_unbound(func: ast.AST) -> dict[str, int]:
    """Locals that may be read before assignment, mapped to their first such line."""
    scan = _UnboundScan(local_names(func))
    scan.block(func.body, _arguments(func))
    return scan.hits


class UnboundVariableDetector(PythonDetector):
    rule_id = "PY-UNBOUND-VARIABLE"
    severity = Severity.ERROR
    categories = (MetricName.ACCURACY,)
    weight = 1.5
    auto_fixable = True

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        findings = []
        for func in iter_functions(tree):
            source.check()
            by_line: dict[int, list[str]] = {}
            for name, line in possibly_unbound(func).items():
                by_line.setdefault(line, []).append(name)
            for line, names in sorted(by_line.items()):
                names.sort()
                if len(names) == 1:
                    message = f"Variable '{names[0]}' might be referenced before assignment."
                else:
                    quoted = ", ".join(f"'{n}'" for n in names)
                    message = f"Variables {quoted} might be referenced before assignment."
                findings.append(self.finding(
                    line, message, symbols=tuple(names), auto_fixable=not body_on_def_line(func),
                ))
        return findings


# ============================================================
#  Loop -> comprehension
# ============================================================

@dataclass(frozen=True)
class LoopCandidate:
    """``X = []`` followed by a for loop whose only effect is ``X.append(...)``."""
    var: str
    assign: ast.Assign
    loop: ast.For
    elt: ast.expr
    cond: ast.expr | None


def _append_value(stmt: ast.stmt, var: str) -> ast.expr | None:
    if not (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Call)):
        return None
    call = stmt.value
    func = call.func
    if not (
        isinstance(func, ast.Attribute) and func.attr == "append"
        and isinstance(func.value, ast.Name) and func.value.id == var
        and len(call.args) == 1 and not call.keywords
        and not isinstance(call.args[0], ast.Starred)
    ):
        return None
    return call.args[0]


def _statement_lists(tree: ast.AST):
    """Every statement list outside class bodies, paired with its owning scope."""
    scopes = [tree, *iter_functions(tree)]
    for scope in scopes:
        pending = [scope.body]
        while pending:
            stmts = pending.pop()
            yield scope, stmts
            for stmt in stmts:
                if isinstance(stmt, _SCOPES):
                    continue
                for field in ("body", "orelse", "finalbody"):
                    inner = getattr(stmt, field, None)
                    if isinstance(inner, list) and inner and isinstance(inner[0], ast.stmt):
                        pending.append(inner)
                for handler in getattr(stmt, "handlers", ()):
                    pending.append(handler.body)
                for case in getattr(stmt, "cases", ()):
                    pending.append(case.body)


_UNSUPPORTED = (ast.Yield, ast.YieldFrom, ast.Await, ast.NamedExpr)


def comprehension_candidates(tree: ast.Module) -> list[LoopCandidate]:
    found = []
    for scope, stmts in _statement_lists(tree):
        for index, (assign, loop) in enumerate(zip(stmts, stmts[1:])):
            if not (
                isinstance(assign, ast.Assign) and len(assign.targets) == 1
                and isinstance(assign.targets[0], ast.Name)
                and isinstance(assign.value, ast.List) and not assign.value.elts
                and assign.lineno == assign.end_lineno
            ):
                continue
            if not (isinstance(loop, ast.For) and not loop.orelse and len(loop.body) == 1):
                continue

            var = assign.targets[0].id
            inner, cond = loop.body[0], None
            if isinstance(inner, ast.If) and not inner.orelse and len(inner.body) == 1:
                cond, inner = inner.test, inner.body[0]
            elt = _append_value(inner, var)
            if elt is None:
                continue

            parts = [loop.target, loop.iter, elt] + ([cond] if cond is not None else [])
            if any(var in target_names(p) for p in parts):
                continue
            if any(isinstance(n, _UNSUPPORTED) for p in parts for n in ast.walk(p)):
                continue

            # The loop variable must not be read once the loop is over
            loop_vars = target_names(loop.target)
            later = [
                n for n in scope_nodes(scope.body)
                if isinstance(n, ast.Name) and n.id in loop_vars
                and n.lineno > (loop.end_lineno or loop.lineno)
            ]
            if later:
                continue
            found.append(LoopCandidate(var, assign, loop, elt, cond))
    return found


class PreferComprehensionDetector(PythonDetector):
    rule_id = "PY-PREFER-COMPREHENSION"
    severity = Severity.SUGGESTION
    categories = (MetricName.READABILITY, MetricName.PERFORMANCE)
    auto_fixable = True

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        return [
            self.finding(
                c.loop.lineno,
                f"Loop building '{c.var}' can be written as a list comprehension.",
                symbols=(c.var,),
            )
            for c in comprehension_candidates(tree)
        ]


# ============================================================
#  Type hints
# ============================================================

def _annotatable_params(func: ast.AST) -> list[ast.arg]:
    args = func.args
    params = [*args.posonlyargs, *args.args]
    if params and params[0].arg in ("self", "cls"):
        params = params[1:]
    params += args.kwonlyargs
    params += [a for a in (args.vararg, args.kwarg) if a is not None]
    return params


class MissingTypeHintsDetector(PythonDetector):
    rule_id = "PY-MISSING-TYPE-HINTS"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        findings = []
        for func in iter_functions(tree):
            if is_trivial(func):
                continue
            missing = [p.arg for p in _annotatable_params(func) if p.annotation is None]
            if missing:
                findings.append(self.finding(
                    func.lineno,
                    f"Function '{func.name}' has parameters without type hints: {', '.join(missing)}.",
                    symbols=tuple(missing),
                ))
        return findings


def returns_value(func: ast.AST) -> bool:
    """True when the function's own body returns a non-None value or yields."""
    for node in scope_nodes(func.body):
        if isinstance(node, (ast.Yield, ast.YieldFrom)):
            return True
        if isinstance(node, ast.Return) and node.value is not None:
            if not (isinstance(node.value, ast.Constant) and node.value.value is None):
                return True
    return False


_LAYOUT_TOKENS = (
    tokenize.COMMENT, tokenize.NL, tokenize.NEWLINE,
    tokenize.INDENT, tokenize.DEDENT, tokenize.ENDMARKER,
)


def header_close(line: str) -> tuple[int, int] | None:
    """Columns of a one-line ``def`` header's closing ')' and its ':'.

    The line is tokenized, so parentheses and colons inside a trailing
    comment or a string default are never taken for the header's own.
    """
    stripped = line.lstrip()
    offset = len(line) - len(stripped)
    try:
        tokens = [
            tok for tok in tokenize.generate_tokens(io.StringIO(stripped + "\n").readline)
            if tok.type not in _LAYOUT_TOKENS
        ]
    except (tokenize.TokenError, SyntaxError):
        return None
    if len(tokens) < 2 or tokens[-2].string != ")" or tokens[-1].string != ":":
        return None
    return offset + tokens[-2].start[1], offset + tokens[-1].start[1]


def single_line_header(func: ast.AST, lines: tuple[str, ...] | list[str]) -> bool:
    if body_on_def_line(func) or func.body[0].lineno <= func.lineno:
        return False
    return header_close(lines[func.lineno - 1]) is not None


class MissingReturnTypeDetector(PythonDetector):
    rule_id = "PY-MISSING-RETURN-TYPE"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)
    auto_fixable = True

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        findings = []
        for func in iter_functions(tree):
            if func.returns is not None or is_trivial(func):
                continue
            fixable = not returns_value(func) and single_line_header(func, source.lines)
            findings.append(self.finding(
                func.lineno,
                f"Function '{func.name}' has no return type annotation.",
                symbols=(func.name,),
                auto_fixable=fixable,
            ))
        return findings


# ============================================================
#  Idioms
# ============================================================

NONE_COMPARISON = re.compile(r"\s*(?<![=!<>])(==|!=)\s*None\b")


def _is_none(node: ast.AST) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


class NoneComparisonDetector(PythonDetector):
    rule_id = "PY-NONE-COMPARISON"
    severity = Severity.WARNING
    categories = (MetricName.BEST_PRACTICES,)
    auto_fixable = True

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        per_line: dict[int, list[bool]] = {}
        for node in ast.walk(tree):
            if not isinstance(node, ast.Compare):
                continue
            left = node.left
            for op, right in zip(node.ops, node.comparators):
                if isinstance(op, (ast.Eq, ast.NotEq)) and (_is_none(left) or _is_none(right)):
                    # Only "x == None" written on one line can be rewritten textually
                    rewritable = _is_none(right) and not _is_none(left) and node.lineno == node.end_lineno
                    per_line.setdefault(node.lineno, []).append(rewritable)
                left = right

        findings = []
        for line, flags in sorted(per_line.items()):
            textual = len(NONE_COMPARISON.findall(source.line(line)))
            fixable = all(flags) and textual == len(flags)
            findings.append(self.finding(
                line, "Comparison to None should use 'is' or 'is not'.", auto_fixable=fixable,
            ))
        return findings


_MUTABLE_CALLS = {"list", "dict", "set", "collections.defaultdict", "defaultdict"}


class MutableDefaultDetector(PythonDetector):
    rule_id = "PY-MUTABLE-DEFAULT"
    severity = Severity.WARNING
    categories = (MetricName.ACCURACY, MetricName.BEST_PRACTICES)

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        findings = []
        for func in iter_functions(tree):
            args = func.args
            positional = [*args.posonlyargs, *args.args]
            pairs = list(zip(positional[len(positional) - len(args.defaults):], args.defaults))
            pairs += [(a, d) for a, d in zip(args.kwonlyargs, args.kw_defaults) if d is not None]
            for arg, default in pairs:
                mutable = isinstance(default, (ast.List, ast.Dict, ast.Set)) or (
                    isinstance(default, ast.Call) and dotted_name(default.func) in _MUTABLE_CALLS
                )
                if mutable:
                    findings.append(self.finding(
                        func.lineno,
                        f"Parameter '{arg.arg}' of '{func.name}' has a mutable default value.",
                        symbols=(arg.arg,),
                    ))
        return findings


class BareExceptDetector(PythonDetector):
    rule_id = "PY-BARE-EXCEPT"
    severity = Severity.WARNING
    categories = (MetricName.BEST_PRACTICES,)

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        return [
            self.finding(node.lineno, "Bare 'except:' also catches KeyboardInterrupt and SystemExit.")
            for node in ast.walk(tree)
            if isinstance(node, ast.ExceptHandler) and node.type is None
        ]


class RangeLenDetector(PythonDetector):
    rule_id = "PY-RANGE-LEN"
    severity = Severity.SUGGESTION
    categories = (MetricName.READABILITY, MetricName.PERFORMANCE)

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        findings = []
        for node in ast.walk(tree):
            if not isinstance(node, (ast.For, ast.AsyncFor)):
                continue
            it = node.iter
            if (
                isinstance(it, ast.Call) and dotted_name(it.func) == "range" and len(it.args) == 1
                and isinstance(it.args[0], ast.Call) and dotted_name(it.args[0].func) == "len"
            ):
                findings.append(self.finding(node.lineno, "Use enumerate() instead of range(len(...))."))
        return findings


class WildcardImportDetector(PythonDetector):
    rule_id = "PY-WILDCARD-IMPORT"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        return [
            self.finding(node.lineno, f"Wildcard import from '{node.module}'.")
            for node in ast.walk(tree)
            if isinstance(node, ast.ImportFrom) and any(a.name == "*" for a in node.names)
        ]


# ============================================================
#  Security
# ============================================================

class _CallDetector(PythonDetector):
    """Flags calls to the dotted names in ``targets``."""

    targets: dict[str, str] = {}

    def matches(self, call: ast.Call, name: str) -> bool:
        return True

    def inspect_tree(self, tree: ast.Module, source: SourceMap) -> list[Finding]:
        findings = []
        for node in ast.walk(tree):
            if not isinstance(node, ast.Call):
                continue
            name = dotted_name(node.func)
            if name in self.targets and self.matches(node, name):
                findings.append(self.finding(node.lineno, self.targets[name], symbols=(name,)))
        return findings


class EvalExecDetector(_CallDetector):
    rule_id = "PY-EVAL-EXEC"
    severity = Severity.ERROR
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})
    targets = {
        "eval": "eval() executes arbitrary code; parse the input explicitly instead.",
        "exec": "exec() executes arbitrary code.",
    }


class UnsafeDeserializationDetector(_CallDetector):
    rule_id = "PY-UNSAFE-DESERIALIZATION"
    severity = Severity.WARNING
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})
    targets = {
        "pickle.load": "pickle can execute code while loading untrusted data.",
        "pickle.loads": "pickle can execute code while loading untrusted data.",
        "marshal.load": "marshal is not safe for untrusted data.",
        "marshal.loads": "marshal is not safe for untrusted data.",
        "yaml.load": "yaml.load without SafeLoader can construct arbitrary objects.",
        "yaml.load_all": "yaml.load_all without SafeLoader can construct arbitrary objects.",
        "yaml.unsafe_load": "yaml.unsafe_load can construct arbitrary objects.",
    }

    def matches(self, call: ast.Call, name: str) -> bool:
        if name not in ("yaml.load", "yaml.load_all"):
            return True
        loader = next((k.value for k in call.keywords if k.arg == "Loader"), None)
        if loader is None and len(call.args) > 1:
            loader = call.args[1]
        return loader is None or "Safe" not in (dotted_name(loader) or "")


_SUBPROCESS = ("subprocess.run", "subprocess.call", "subprocess.check_call",
               "subprocess.check_output", "subprocess.Popen")


class ShellInjectionDetector(_CallDetector):
    rule_id = "PY-SHELL-INJECTION"
    severity = Severity.WARNING
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})
    targets = {
        "os.system": "os.system runs its argument through the shell.",
        "os.popen": "os.popen runs its argument through the shell.",
        **{name: f"{name} with shell=True runs its argument through the shell." for name in _SUBPROCESS},
    }

    def matches(self, call: ast.Call, name: str) -> bool:
        if not name.startswith("subprocess."):
            return True
        return any(
            k.arg == "shell" and isinstance(k.value, ast.Constant) and k.value.value is True
            for k in call.keywords
        )


PYTHON_DETECTORS = (
    SyntaxErrorDetector,
    UnboundVariableDetector,
    PreferComprehensionDetector,
    MissingTypeHintsDetector,
    MissingReturnTypeDetector,
    NoneComparisonDetector,
    MutableDefaultDetector,
    BareExceptDetector,
    RangeLenDetector,
    WildcardImportDetector,
    EvalExecDetector,
    UnsafeDeserializationDetector,
    ShellInjectionDetector,
)
