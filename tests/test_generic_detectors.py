from codescore.detectors.generic import (
    DeepNestingDetector,
    HardcodedSecretDetector,
    LongLineDetector,
    MixedIndentDetector,
    SqlInjectionDetector,
    TodoMarkerDetector,
    TrailingWhitespaceDetector,
)
from codescore.languages import GENERIC_LANGUAGE, LANGUAGES
from codescore.models import Severity
from codescore.normalizer import normalize


def _run(detector_cls, code: str, language: str | None = "python"):
    config = LANGUAGES[language] if language else GENERIC_LANGUAGE
    return detector_cls().inspect(normalize(code, config, language))


def test_long_line_uses_language_limit() -> None:
    code = "x = '" + "a" * 120 + "'\ny = 1\n"
    findings = _run(LongLineDetector, code)

    assert [f.line for f in findings] == [1]
    assert findings[0].message == "Line is 126 characters long (limit 99)."
    assert _run(LongLineDetector, "x = '" + "a" * 100 + "'\n", "java") == []


def test_trailing_whitespace() -> None:
    findings = _run(TrailingWhitespaceDetector, "x = 1   \ny = 2\n")

    assert [f.line for f in findings] == [1]
    assert findings[0].auto_fixable is True
    assert findings[0].kind == Severity.SUGGESTION


def test_trailing_whitespace_inside_multiline_string_is_kept() -> None:
    assert _run(TrailingWhitespaceDetector, 'doc = """a  \nb"""\n') == []


def test_todo_markers_only_in_comments() -> None:
    code = "# TODO: handle empty input\ns = 'TODO'\nx = 1  # FIXME later\n"

    assert [f.line for f in _run(TodoMarkerDetector, code)] == [1, 3]


def test_todo_markers_in_unregistered_language() -> None:
    assert [f.line for f in _run(TodoMarkerDetector, "DISPLAY X. TODO\n", None)] == [1]


def test_deep_nesting_reports_each_run_once() -> None:
    code = (
        "def f(a):\n"
        "    if a:\n"
        "        if a:\n"
        "            if a:\n"
        "                if a:\n"
        "                    if a:\n"
        "                        return a\n"
        "    return None\n"
    )
    findings = _run(DeepNestingDetector, code)

    assert [f.line for f in findings] == [6]
    assert findings[0].message == "Code is nested 6 levels deep (limit 4)."


def test_deep_nesting_with_braces() -> None:
    code = "function f() {\n  if (a) {\n    if (b) {\n      if (c) {\n        if (d) {\n          go();\n        }\n      }\n    }\n  }\n}\n"

    assert [f.line for f in _run(DeepNestingDetector, code, "javascript")] == [6]


def test_mixed_indent() -> None:
    code = "def f():\n\tx = 1\n        return x\n"
    findings = _run(MixedIndentDetector, code)

    assert [f.line for f in findings] == [3]
    assert findings[0].message == "Line is indented with spaces but the file uses tabs."


def test_tab_and_space_in_one_indent() -> None:
    assert [f.line for f in _run(MixedIndentDetector, "if x:\n \tpass\n")] == [2]


def test_hardcoded_secret() -> None:
    code = 'API_KEY = "sk_live_abcdef123"\npassword = ""\ntoken = get_token()\n'
    findings = _run(HardcodedSecretDetector, code)

    assert [f.line for f in findings] == [1]
    assert "'API_KEY'" in findings[0].message


def test_sql_injection() -> None:
    code = (
        'query = "SELECT * FROM users WHERE id = " + user_id\n'
        'cursor.execute("SELECT * FROM users WHERE id = %s", (uid,))\n'
        'sql = f"DELETE FROM users WHERE id = {uid}"\n'
    )
    assert [f.line for f in _run(SqlInjectionDetector, code)] == [1, 3]
