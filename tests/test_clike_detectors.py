from codescore.detectors.clike import (
    ConsoleLogDetector,
    EmptyCatchDetector,
    InnerHtmlDetector,
    JavaStringEqualityDetector,
    JsEvalDetector,
    LooseEqualityDetector,
    UnbalancedDelimitersDetector,
    UnsafeFunctionDetector,
    UsingNamespaceStdDetector,
    VarDeclarationDetector,
)
from codescore.languages import LANGUAGES
from codescore.models import Severity
from codescore.normalizer import normalize


def _run(detector_cls, code: str, language: str = "javascript"):
    return detector_cls().inspect(normalize(code, LANGUAGES[language], language))


def test_mismatched_closer_is_reported() -> None:
    findings = _run(UnbalancedDelimitersDetector, "function f() {\n  return (1;\n}\n")

    assert [f.line for f in findings] == [3]
    assert findings[0].message == "Unmatched '}'."
    assert findings[0].kind == Severity.ERROR


def test_unclosed_opener_is_reported() -> None:
    findings = _run(UnbalancedDelimitersDetector, "int main() {\n  return 0;\n", "c")

    assert [f.line for f in findings] == [1]
    assert "never closed" in findings[0].message


def test_delimiters_in_strings_and_comments_are_ignored() -> None:
    assert _run(UnbalancedDelimitersDetector, 'const s = "{";\n// }\n/* ) */\n') == []


def test_delimiters_in_regex_literals_are_ignored() -> None:
    code = "const re = /[(]/;\nif (re.test(s)) {}\nconst m = s.match(/\\)+/g);\n"

    assert _run(UnbalancedDelimitersDetector, code) == []
    typed = "function f(s) {\n  return /}/.test(s);\n}\n"
    assert _run(UnbalancedDelimitersDetector, typed, "typescript") == []


def test_loose_equality() -> None:
    code = "if (a == b) {}\nif (a == null) {}\nif (a === b) {}\nif (a != b) {}\n"
    findings = _run(LooseEqualityDetector, code)

    assert [f.line for f in findings] == [1, 4]
    assert findings[1].message == "Use '!==' instead of '!='."


def test_loose_equality_only_applies_to_javascript() -> None:
    assert "java" not in LooseEqualityDetector.languages
    assert "typescript" in LooseEqualityDetector.languages


def test_var_and_console_log() -> None:
    code = "var x = 1;\nlet y = 2;\nconsole.log(x);\nconsole.error(y);\n"

    assert [f.line for f in _run(VarDeclarationDetector, code)] == [1]
    assert [f.line for f in _run(ConsoleLogDetector, code)] == [3]


def test_js_eval() -> None:
    code = "eval(userInput);\nobj.eval(x);\nconst f = new Function('return 1');\n"
    findings = _run(JsEvalDetector, code)

    assert [f.line for f in findings] == [1, 3]
    assert all(f.kind == Severity.ERROR for f in findings)


def test_inner_html_and_document_write() -> None:
    code = "el.innerHTML = html;\nel.textContent = text;\ndocument.write(html);\n"

    assert [f.line for f in _run(InnerHtmlDetector, code)] == [1, 3]


def test_unsafe_c_functions_keep_their_own_severity() -> None:
    findings = _run(UnsafeFunctionDetector, "gets(buf);\nstrcpy(a, b);\nfgets(buf, 10, stdin);\n", "c")

    assert [(f.line, f.kind) for f in findings] == [(1, Severity.ERROR), (2, Severity.WARNING)]
    assert findings[0].symbols == ("gets",)


def test_using_namespace_std() -> None:
    code = "#include <iostream>\nusing namespace std;\n"

    assert [f.line for f in _run(UsingNamespaceStdDetector, code, "cpp")] == [2]


def test_empty_catch() -> None:
    code = "try { run(); } catch (Exception e) {}\n"
    documented = "try { run(); } catch (Exception e) { /* expected */ }\n"

    assert [f.line for f in _run(EmptyCatchDetector, code, "java")] == [1]
    assert _run(EmptyCatchDetector, documented, "java") == []


def test_java_string_equality() -> None:
    code = 'if (name == "admin") {}\nif (count == 3) {}\n'

    assert [f.line for f in _run(JavaStringEqualityDetector, code, "java")] == [1]
