"""Token-based detectors for the C family (JavaScript, TypeScript, Java, C, C++, C#, Go)."""

from __future__ import annotations

from codescore.detectors.base import SECURITY, SYNTAX, Detector
from codescore.models import Finding, MetricName, Severity
from codescore.normalizer import SourceMap, Token, TokenKind

JS_LANGUAGES = frozenset({"javascript", "typescript"})
C_LANGUAGES = frozenset({"c", "cpp"})
BRACE_LANGUAGES = frozenset({"javascript", "typescript", "java", "c", "cpp", "csharp", "go"})
CATCH_LANGUAGES = frozenset({"javascript", "typescript", "java", "cpp", "csharp"})

_PAIRS = {")": "(", "]": "[", "}": "{"}


def code_tokens(source: SourceMap) -> list[Token]:
    """Tokens without comments."""
    return [tok for tok in source.tokens if tok.kind != TokenKind.COMMENT]


def _is(tok: Token | None, text: str, kind: TokenKind = TokenKind.OPERATOR) -> bool:
    return tok is not None and tok.kind == kind and tok.text == text


def _at(tokens: list[Token], index: int) -> Token | None:
    return tokens[index] if 0 <= index < len(tokens) else None


class UnbalancedDelimitersDetector(Detector):
    rule_id = "CL-UNBALANCED-DELIMITERS"
    severity = Severity.ERROR
    categories = (MetricName.ACCURACY,)
    tags = frozenset({SYNTAX})
    languages = BRACE_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        stack: list[Token] = []
        for tok in code_tokens(source):
            if tok.kind != TokenKind.OPERATOR:
                continue
            if tok.text in ("(", "[", "{"):
                stack.append(tok)
            elif tok.text in _PAIRS:
                if not stack or stack[-1].text != _PAIRS[tok.text]:
                    # Report the first mismatch only; later ones are usually knock-on effects
                    return [self.finding(tok.line, f"Unmatched '{tok.text}'.")]
                stack.pop()
        if stack:
            opener = stack[0]
            return [self.finding(opener.line, f"'{opener.text}' opened here is never closed.")]
        return []


class LooseEqualityDetector(Detector):
    rule_id = "JS-LOOSE-EQUALITY"
    severity = Severity.WARNING
    categories = (MetricName.ACCURACY,)
    languages = JS_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        findings = []
        for i, tok in enumerate(tokens):
            if tok.kind != TokenKind.OPERATOR or tok.text not in ("==", "!="):
                continue
            # "x == null" is the accepted idiom for null-or-undefined
            if _is(_at(tokens, i + 1), "null", TokenKind.WORD):
                continue
            strict = tok.text + "="
            findings.append(self.finding(tok.line, f"Use '{strict}' instead of '{tok.text}'."))
        return findings


class VarDeclarationDetector(Detector):
    rule_id = "JS-VAR-DECLARATION"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)
    languages = JS_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        return [
            self.finding(tok.line, "Prefer 'let' or 'const' over 'var'.")
            for tok in code_tokens(source)
            if tok.kind == TokenKind.WORD and tok.text == "var"
        ]


class ConsoleLogDetector(Detector):
    rule_id = "JS-CONSOLE-LOG"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)
    languages = JS_LANGUAGES
    weight = 0.5

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        findings = []
        for i, tok in enumerate(tokens):
            method = _at(tokens, i + 2)
            if (
                _is(tok, "console", TokenKind.WORD) and _is(_at(tokens, i + 1), ".")
                and method is not None and method.text in ("log", "debug", "info")
            ):
                findings.append(self.finding(tok.line, f"Leftover console.{method.text}() call."))
        return findings


class JsEvalDetector(Detector):
    rule_id = "JS-EVAL"
    severity = Severity.ERROR
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})
    languages = JS_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        findings = []
        for i, tok in enumerate(tokens):
            if tok.kind != TokenKind.WORD or not _is(_at(tokens, i + 1), "("):
                continue
            if _is(_at(tokens, i - 1), "."):
                continue
            if tok.text == "eval":
                findings.append(self.finding(tok.line, "eval() executes arbitrary code."))
            elif tok.text == "Function" and _is(_at(tokens, i - 1), "new", TokenKind.WORD):
                findings.append(self.finding(tok.line, "new Function() executes arbitrary code."))
        return findings


class InnerHtmlDetector(Detector):
    rule_id = "JS-INNER-HTML"
    severity = Severity.WARNING
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})
    languages = JS_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        findings = []
        for i, tok in enumerate(tokens):
            if tok.kind != TokenKind.WORD:
                continue
            following = _at(tokens, i + 1)
            if tok.text in ("innerHTML", "outerHTML") and following and following.text in ("=", "+="):
                findings.append(self.finding(tok.line, f"Assigning to {tok.text} can inject markup; use textContent."))
            elif tok.text == "write" and _is(_at(tokens, i - 1), ".") and _is(_at(tokens, i - 2), "document", TokenKind.WORD):
                findings.append(self.finding(tok.line, "document.write() can inject markup."))
        return findings


_UNSAFE_C_FUNCTIONS = {
    "gets": (Severity.ERROR, "gets() cannot limit input size; use fgets()."),
    "strcpy": (Severity.WARNING, "strcpy() does not check buffer bounds; use a bounded copy."),
    "strcat": (Severity.WARNING, "strcat() does not check buffer bounds; use a bounded append."),
    "sprintf": (Severity.WARNING, "sprintf() does not check buffer bounds; use snprintf()."),
    "vsprintf": (Severity.WARNING, "vsprintf() does not check buffer bounds; use vsnprintf()."),
    "scanf": (Severity.WARNING, "scanf() with %s does not limit input size."),
}


class UnsafeFunctionDetector(Detector):
    rule_id = "CPP-UNSAFE-FUNCTION"
    severity = Severity.WARNING
    categories = (MetricName.SECURITY,)
    tags = frozenset({SECURITY})
    languages = C_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        findings = []
        for i, tok in enumerate(tokens):
            if tok.kind == TokenKind.WORD and tok.text in _UNSAFE_C_FUNCTIONS and _is(_at(tokens, i + 1), "("):
                severity, message = _UNSAFE_C_FUNCTIONS[tok.text]
                findings.append(self.finding(tok.line, message, severity=severity, symbols=(tok.text,)))
        return findings


class UsingNamespaceStdDetector(Detector):
    rule_id = "CPP-USING-NAMESPACE-STD"
    severity = Severity.SUGGESTION
    categories = (MetricName.BEST_PRACTICES,)
    languages = frozenset({"cpp"})

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        return [
            self.finding(tok.line, "'using namespace std' pollutes the global namespace.")
            for i, tok in enumerate(tokens)
            if _is(tok, "using", TokenKind.WORD)
            and _is(_at(tokens, i + 1), "namespace", TokenKind.WORD)
            and _is(_at(tokens, i + 2), "std", TokenKind.WORD)
        ]


class EmptyCatchDetector(Detector):
    rule_id = "CL-EMPTY-CATCH"
    severity = Severity.WARNING
    categories = (MetricName.BEST_PRACTICES,)
    languages = CATCH_LANGUAGES

    def inspect(self, source: SourceMap) -> list[Finding]:
        # Comments count as content: a documented empty handler is intentional
        tokens = list(source.tokens)
        findings = []
        for i, tok in enumerate(tokens):
            if not _is(tok, "catch", TokenKind.WORD):
                continue
            j = i + 1
            if _is(_at(tokens, j), "("):
                depth = 0
                while j < len(tokens):
                    if _is(tokens[j], "("):
                        depth += 1
                    elif _is(tokens[j], ")"):
                        depth -= 1
                        if depth == 0:
                            break
                    j += 1
                j += 1
            if _is(_at(tokens, j), "{") and _is(_at(tokens, j + 1), "}"):
                findings.append(self.finding(tok.line, "Empty catch block silently swallows errors."))
        return findings


class JavaStringEqualityDetector(Detector):
    rule_id = "JAVA-STRING-EQUALITY"
    severity = Severity.WARNING
    categories = (MetricName.ACCURACY,)
    languages = frozenset({"java"})

    def inspect(self, source: SourceMap) -> list[Finding]:
        tokens = code_tokens(source)
        findings = []
        for i, tok in enumerate(tokens):
            if tok.kind != TokenKind.OPERATOR or tok.text not in ("==", "!="):
                continue
            neighbours = (_at(tokens, i - 1), _at(tokens, i + 1))
            if any(n is not None and n.kind == TokenKind.STRING for n in neighbours):
                findings.append(self.finding(tok.line, "Compare strings with equals(), not '=='."))
        return findings


CLIKE_DETECTORS = (
    UnbalancedDelimitersDetector,
    LooseEqualityDetector,
    VarDeclarationDetector,
    ConsoleLogDetector,
    JsEvalDetector,
    InnerHtmlDetector,
    UnsafeFunctionDetector,
    UsingNamespaceStdDetector,
    EmptyCatchDetector,
    JavaStringEqualityDetector,
)
