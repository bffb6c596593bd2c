from codescore.detectors.base import SECURITY, SYNTAX, Detector, PatternDetector
from codescore.detectors.registry import DetectorRegistry, default_registry

__all__ = [
    "SECURITY",
    "SYNTAX",
    "Detector",
    "DetectorRegistry",
    "PatternDetector",
    "default_registry",
]
