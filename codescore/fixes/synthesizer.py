"""Fix synthesizer: applies registered patches for auto-fixable findings."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field

from codescore.cancellation import CancellationToken, Deadline, checkpoint
from codescore.errors import FixConflict
from codescore.fixes.buffer import LineBuffer
from codescore.fixes.patches import PatchRegistry
from codescore.models import Finding
from codescore.normalizer import SourceMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnresolvedFix:
    rule_id: str
    line: int
    reason: str


@dataclass
class FixOutcome:
    improved_code: str
    applied: list[Finding] = field(default_factory=list)
    unresolved: list[UnresolvedFix] = field(default_factory=list)


def _still_parses(source: SourceMap, buffer: LineBuffer) -> bool:
    """Python output must stay valid whenever the input was."""
    if source.language.lexer != "python" or source.python_tree is None:
        return True
    try:
        ast.parse("\n".join(buffer.render()))
    except (SyntaxError, ValueError, RecursionError):
        return False
    return True


def _priority(finding: Finding) -> tuple[int, str]:
    return (finding.kind.rank, finding.rule_id)


def synthesize(
    source: SourceMap,
    original_text: str,
    findings: list[Finding],
    patches: PatchRegistry,
    *,
    max_fixes_per_line: int = 1,
    deadline: Deadline | None = None,
    cancel_token: CancellationToken | None = None,
) -> FixOutcome:
    """Patch fixable findings in ascending line order on a snapshot of the source.

    ``original_text`` is returned untouched when nothing gets applied.
    """
    by_line: dict[int, list[Finding]] = {}
    for finding in findings:
        if finding.auto_fixable and patches.get(finding.rule_id, source.language_key) is not None:
            by_line.setdefault(finding.line, []).append(finding)
    if not by_line:
        return FixOutcome(original_text)

    buffer = LineBuffer(source.lines, source.language)
    applied: list[Finding] = []
    unresolved: list[UnresolvedFix] = []

    for line in sorted(by_line):
        ranked = sorted(by_line[line], key=_priority)
        winners, losers = ranked[:max_fixes_per_line], ranked[max_fixes_per_line:]
        for finding in losers:
            unresolved.append(UnresolvedFix(
                finding.rule_id, line, "Not applied: a higher-priority fix on this line took precedence."
            ))

        for finding in winners:
            checkpoint(cancel_token, deadline)
            patch = patches.get(finding.rule_id, source.language_key)
            state = buffer.snapshot()
            try:
                ok = patch.apply(buffer, finding)
            except FixConflict as e:
                reason = f"Not applied: conflicts with another fix on line {e.line}."
            except Exception as e:
                logger.warning(f"Patch {finding.rule_id} failed on line {line}: {e}")
                reason = f"Not applied: the fix raised an error ({e})."
            else:
                if ok and _still_parses(source, buffer):
                    applied.append(finding)
                    continue
                if ok:
                    logger.warning(f"Patch {finding.rule_id} on line {line} produced code that does not parse")
                    reason = "Not applied: the rewritten code did not parse."
                else:
                    reason = "Not applied: the code could not be rewritten safely."
            buffer.restore(state)
            unresolved.append(UnresolvedFix(finding.rule_id, line, reason))

    logger.info(f"Applied {len(applied)} fix(es), {len(unresolved)} unresolved")
    if not buffer.changed:
        return FixOutcome(original_text, applied, unresolved)

    improved = "\n".join(buffer.render())
    if source.trailing_newline:
        improved += "\n"
    return FixOutcome(improved, applied, unresolved)
