from __future__ import annotations

from codescore.errors import FixConflict
from codescore.languages import LanguageConfig


class LineBuffer:
    """Edits addressed by original line numbers over an immutable snapshot.

    Patches never see each other's output: every edit refers to the line
    numbers of the original text, so applying them in ascending order cannot
    shift a later anchor. Rewriting a line that another edit already owns
    raises FixConflict.
    """

    def __init__(self, lines: list[str] | tuple[str, ...], language: LanguageConfig | None = None):
        self.original = tuple(lines)
        self.language = language
        self._spans: dict[int, tuple[int, list[str]]] = {}  # start -> (end, replacement)
        self._owner: dict[int, int] = {}  # line -> start of the span that rewrote it
        self._before: dict[int, list[str]] = {}
        self._after: dict[int, list[str]] = {}

    @property
    def line_count(self) -> int:
        return len(self.original)

    @property
    def text(self) -> str:
        return "\n".join(self.original)

    def line(self, number: int) -> str:
        return self.original[number - 1]

    def is_touched(self, number: int) -> bool:
        return number in self._owner

    @property
    def changed(self) -> bool:
        return bool(self._spans or self._before or self._after)

    def _check_range(self, start: int, end: int) -> None:
        if not 1 <= start <= end <= self.line_count:
            raise IndexError(f"Lines {start}-{end} outside 1-{self.line_count}")

    def replace(self, start: int, end: int, new_lines: list[str]) -> None:
        self._check_range(start, end)
        for number in range(start, end + 1):
            if number in self._owner:
                raise FixConflict(number)
            # Inserted lines anchored inside the span would be lost
            if number != start and number in self._before:
                raise FixConflict(number)
            if number != end and number in self._after:
                raise FixConflict(number)
        self._spans[start] = (end, [line.rstrip() for line in new_lines])
        for number in range(start, end + 1):
            self._owner[number] = start

    def insert_before(self, number: int, new_lines: list[str]) -> None:
        self._check_range(number, number)
        if number in self._owner and self._owner[number] != number:
            raise FixConflict(number)
        self._before.setdefault(number, []).extend(line.rstrip() for line in new_lines)

    def insert_after(self, number: int, new_lines: list[str]) -> None:
        self._check_range(number, number)
        owner = self._owner.get(number)
        if owner is not None and self._spans[owner][0] != number:
            raise FixConflict(number)
        self._after.setdefault(number, []).extend(line.rstrip() for line in new_lines)

    def inserted_before(self, number: int) -> list[str]:
        return list(self._before.get(number, []))

    def inserted_after(self, number: int) -> list[str]:
        return list(self._after.get(number, []))

    def render(self) -> list[str]:
        out: list[str] = []
        number = 1
        while number <= self.line_count:
            out.extend(self._before.get(number, []))
            if number in self._spans:
                end, replacement = self._spans[number]
                out.extend(replacement)
                out.extend(self._after.get(end, []))
                number = end + 1
                continue
            out.append(self.original[number - 1])
            out.extend(self._after.get(number, []))
            number += 1
        return out

    def snapshot(self) -> tuple:
        return (
            dict(self._spans),
            dict(self._owner),
            {k: list(v) for k, v in self._before.items()},
            {k: list(v) for k, v in self._after.items()},
        )

    def restore(self, state: tuple) -> None:
        spans, owner, before, after = state
        self._spans = dict(spans)
        self._owner = dict(owner)
        self._before = {k: list(v) for k, v in before.items()}
        self._after = {k: list(v) for k, v in after.items()}
