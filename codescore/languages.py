"""Language registry: lexer syntax, style limits and pattern rules per language."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from codescore.errors import UnsupportedLanguage

logger = logging.getLogger(__name__)


@dataclass
class PatternRule:
    """A regex rule declared in a language skill file."""
    rule_id: str
    pattern: str
    message: str
    severity: str = "Warning"
    categories: list[str] = field(default_factory=lambda: ["best_practices"])
    tags: list[str] = field(default_factory=list)


@dataclass
class LanguageConfig:
    name: str
    extensions: list[str]
    aliases: list[str] = field(default_factory=list)
    lexer: str = "regex"  # "python" | "regex" | "whitespace"
    line_comments: list[str] = field(default_factory=list)
    block_comments: list[tuple[str, str]] = field(default_factory=list)
    string_delimiters: list[str] = field(default_factory=lambda: ['"', "'"])
    multiline_strings: list[str] = field(default_factory=list)
    regex_literals: bool = False  # /pattern/ literals, as in JavaScript
    block_style: str = "braces"  # "braces" | "indent"
    max_line_length: int = 100
    max_nesting: int = 4
    rules: list[PatternRule] = field(default_factory=list)


def _c_comments() -> dict:
    return {"line_comments": ["//"], "block_comments": [("/*", "*/")]}


# ============================================================
#  Built-in languages (always available, no YAML needed)
# ============================================================

LANGUAGES: dict[str, LanguageConfig] = {
    "python": LanguageConfig(
        name="Python",
        extensions=[".py", ".pyw"],
        aliases=["py", "python3"],
        lexer="python",
        line_comments=["#"],
        multiline_strings=['"""', "'''"],
        block_style="indent",
        max_line_length=99,
    ),
    "javascript": LanguageConfig(
        name="JavaScript",
        extensions=[".js", ".jsx", ".mjs", ".cjs"],
        aliases=["js", "jsx", "node"],
        multiline_strings=["`"],
        regex_literals=True,
        **_c_comments(),
    ),
    "typescript": LanguageConfig(
        name="TypeScript",
        extensions=[".ts", ".tsx"],
        aliases=["ts", "tsx"],
        multiline_strings=["`"],
        regex_literals=True,
        **_c_comments(),
    ),
    "java": LanguageConfig(
        name="Java",
        extensions=[".java"],
        multiline_strings=['"""'],
        max_line_length=120,
        **_c_comments(),
    ),
    "cpp": LanguageConfig(
        name="C++",
        extensions=[".cpp", ".cc", ".cxx", ".hpp", ".hh"],
        aliases=["c++", "cxx", "cc"],
        max_line_length=120,
        **_c_comments(),
    ),
    "c": LanguageConfig(
        name="C",
        extensions=[".c", ".h"],
        **_c_comments(),
    ),
    "csharp": LanguageConfig(
        name="C#",
        extensions=[".cs"],
        aliases=["c#", "cs"],
        max_line_length=120,
        **_c_comments(),
    ),
    "go": LanguageConfig(
        name="Go",
        extensions=[".go"],
        aliases=["golang"],
        multiline_strings=["`"],
        max_line_length=120,
        **_c_comments(),
    ),
}

# Used when the declared language is not registered (degraded mode)
GENERIC_LANGUAGE = LanguageConfig(
    name="Plain text",
    extensions=[],
    lexer="whitespace",
    string_delimiters=[],
    block_style="indent",
)


# ============================================================
#  YAML skill loader
# ============================================================

def _parse_rules(raw_rules: list) -> list[PatternRule]:
    rules = []
    for raw in raw_rules or []:
        rules.append(PatternRule(
            rule_id=raw["id"],
            pattern=raw["pattern"],
            message=raw["message"],
            severity=raw.get("severity", "Warning"),
            categories=raw.get("categories", ["best_practices"]),
            tags=raw.get("tags", []),
        ))
    return rules


def _load_skill_yaml(path: Path) -> tuple[str, LanguageConfig] | None:
    """Load a language skill file. Returns (lang_key, config) or None on error."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not data or "name" not in data or "extensions" not in data:
            logger.warning(f"Skill {path.name}: missing required fields (name, extensions)")
            return None
        key = path.stem.lower().replace("-", "_").replace(" ", "_")
        return key, LanguageConfig(
            name=data["name"],
            extensions=data["extensions"],
            aliases=data.get("aliases", []),
            lexer=data.get("lexer", "regex"),
            line_comments=data.get("line_comments", []),
            block_comments=[tuple(pair) for pair in data.get("block_comments", [])],
            string_delimiters=data.get("string_delimiters", ['"', "'"]),
            multiline_strings=data.get("multiline_strings", []),
            regex_literals=bool(data.get("regex_literals", False)),
            block_style=data.get("block_style", "braces"),
            max_line_length=int(data.get("max_line_length", 100)),
            max_nesting=int(data.get("max_nesting", 4)),
            rules=_parse_rules(data.get("rules", [])),
        )
    except Exception as e:
        logger.warning(f"Skipping skill {path.name}: {e}")
        return None


def _load_skills_from_dir(skills_dir: Path) -> dict[str, LanguageConfig]:
    """Load all .yml files from a skills directory."""
    result = {}
    if not skills_dir.is_dir():
        return result
    for f in sorted(skills_dir.glob("*.yml")):
        loaded = _load_skill_yaml(f)
        if loaded:
            key, config = loaded
            result[key] = config
            logger.info(f"Loaded skill: {config.name} ({', '.join(config.extensions)})")
    return result


def get_languages(extra_dirs: list[Path] | None = None) -> dict[str, LanguageConfig]:
    """Return merged LANGUAGES: built-ins + user skills + project skills.

    Loading order (later wins):
    1. Built-in LANGUAGES dict
    2. ~/.codescore/languages/*.yml  (user-level)
    3. .codescore/languages/*.yml    (project-level)
    4. extra_dirs, in the order given
    """
    merged = dict(LANGUAGES)
    merged.update(_load_skills_from_dir(Path.home() / ".codescore" / "languages"))
    merged.update(_load_skills_from_dir(Path.cwd() / ".codescore" / "languages"))
    for skills_dir in extra_dirs or []:
        merged.update(_load_skills_from_dir(skills_dir))
    return merged


# ============================================================
#  Lookup helpers
# ============================================================

def resolve_language(
    declared: str, languages: dict[str, LanguageConfig] | None = None
) -> tuple[str, LanguageConfig]:
    """Map a declared language ("Python", "C++", "js") to its registry entry.

    Raises UnsupportedLanguage when nothing matches.
    """
    langs = LANGUAGES if languages is None else languages
    wanted = declared.strip().lower()
    for key, config in langs.items():
        names = {key, config.name.lower(), *(a.lower() for a in config.aliases)}
        if wanted in names:
            return key, config
    raise UnsupportedLanguage(declared)


def detect_language(
    filename: str, languages: dict[str, LanguageConfig] | None = None
) -> str | None:
    """Return the language key for a filename's extension, if any."""
    langs = LANGUAGES if languages is None else languages
    _, ext = os.path.splitext(filename)
    ext = ext.lower()
    for lang_key, config in langs.items():
        if ext in config.extensions:
            return lang_key
    return None
