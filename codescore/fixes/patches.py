from __future__ import annotations

from codescore.fixes.buffer import LineBuffer
from codescore.models import Finding

ANY_LANGUAGE = "*"


class Patch:
    """A line-anchored rewrite for one rule.

    ``apply`` edits the buffer and returns True, or returns False without
    touching it when the finding cannot be fixed safely.
    """

    rule_id: str = ""
    languages: frozenset[str] = frozenset()  # empty = every language

    def apply(self, buffer: LineBuffer, finding: Finding) -> bool:
        raise NotImplementedError


class PatchRegistry:
    def __init__(self, patches: list[Patch] | tuple = ()):
        self._patches: dict[tuple[str, str], Patch] = {}
        for patch in patches:
            self.register(patch)

    def register(self, patch: Patch) -> None:
        if not patch.rule_id:
            raise ValueError(f"{patch!r} has no rule_id")
        for language in patch.languages or {ANY_LANGUAGE}:
            self._patches[(language, patch.rule_id)] = patch

    def get(self, rule_id: str, language_key: str | None) -> Patch | None:
        """Language-specific patch first, then the generic one."""
        if language_key is not None and (language_key, rule_id) in self._patches:
            return self._patches[(language_key, rule_id)]
        return self._patches.get((ANY_LANGUAGE, rule_id))

    def rule_ids(self) -> list[str]:
        return sorted({rule_id for _, rule_id in self._patches})


class TrailingWhitespacePatch(Patch):
    rule_id = "GEN-TRAILING-WHITESPACE"

    def apply(self, buffer: LineBuffer, finding: Finding) -> bool:
        line = buffer.line(finding.line)
        if line == line.rstrip():
            return False
        buffer.replace(finding.line, finding.line, [line.rstrip()])
        return True

