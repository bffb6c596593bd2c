from codescore.fixes.buffer import LineBuffer
from codescore.fixes.patches import Patch, PatchRegistry, TrailingWhitespacePatch
from codescore.fixes.python import PYTHON_PATCHES
from codescore.fixes.synthesizer import FixOutcome, UnresolvedFix, synthesize


def default_patches() -> PatchRegistry:
    registry = PatchRegistry([TrailingWhitespacePatch()])
    for patch_cls in PYTHON_PATCHES:
        registry.register(patch_cls())
    return registry


__all__ = [
    "FixOutcome",
    "LineBuffer",
    "Patch",
    "PatchRegistry",
    "UnresolvedFix",
    "default_patches",
    "synthesize",
]
