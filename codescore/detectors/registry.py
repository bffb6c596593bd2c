from __future__ import annotations

import logging

from codescore.config import DetectorSelection, ReviewConfig
from codescore.detectors.base import SECURITY, SYNTAX, Detector, pattern_detectors
from codescore.detectors.clike import CLIKE_DETECTORS
from codescore.detectors.generic import GENERIC_DETECTORS
from codescore.detectors.python import PYTHON_DETECTORS
from codescore.languages import LanguageConfig
from codescore.models import ReviewType

logger = logging.getLogger(__name__)

ANY_LANGUAGE = "*"

_REQUIRED_TAG = {
    ReviewType.QUICK_SYNTAX: SYNTAX,
    ReviewType.SECURITY_ONLY: SECURITY,
}


class DetectorRegistry:
    """Detectors keyed by (language, rule_id). Registering an existing key replaces it."""

    def __init__(self, detectors: list[Detector] | tuple = ()):
        self._detectors: dict[tuple[str, str], Detector] = {}
        for detector in detectors:
            self.register(detector)

    def register(self, detector: Detector) -> None:
        if not detector.rule_id:
            raise ValueError(f"{detector!r} has no rule_id")
        for language in detector.languages or {ANY_LANGUAGE}:
            self._detectors[(language, detector.rule_id)] = detector

    def __len__(self) -> int:
        return len(self._detectors)

    def for_language(self, language_key: str | None) -> list[Detector]:
        """Detectors that apply to a language, in rule_id order.

        A language-specific detector shadows a generic one with the same rule_id.
        ``None`` (unregistered language) yields only the generic detectors.
        """
        chosen: dict[str, Detector] = {}
        for (language, rule_id), detector in self._detectors.items():
            if language == ANY_LANGUAGE:
                chosen.setdefault(rule_id, detector)
        if language_key is not None:
            for (language, rule_id), detector in self._detectors.items():
                if language == language_key:
                    chosen[rule_id] = detector
        return [chosen[rule_id] for rule_id in sorted(chosen)]

    def select(
        self, language_key: str | None, review_type: ReviewType, config: ReviewConfig
    ) -> list[Detector]:
        """Detectors to run for one request, after review-type and config filtering."""
        required = _REQUIRED_TAG.get(review_type)
        selected = []
        for detector in self.for_language(language_key):
            if detector.rule_id in config.disabled_rules:
                continue
            if required and required not in detector.tags:
                continue
            if (
                config.enabled_detectors != DetectorSelection.ALL
                and config.enabled_detectors.value not in detector.tags
            ):
                continue
            selected.append(detector)
        return selected


def default_registry(languages: dict[str, LanguageConfig] | None = None) -> DetectorRegistry:
    """Built-in generic, Python and C-family detectors plus YAML pattern rules."""
    registry = DetectorRegistry()
    for detector_cls in (*GENERIC_DETECTORS, *PYTHON_DETECTORS, *CLIKE_DETECTORS):
        registry.register(detector_cls())
    for key, config in (languages or {}).items():
        for detector in pattern_detectors(key, config.rules):
            registry.register(detector)
    logger.info(f"Detector registry ready with {len(registry)} entries")
    return registry
