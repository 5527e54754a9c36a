"""
Patch detector: tell whether an archive already carries the injection wrapper.

The entry script is treated as opaque text. What counts as "patched" is a
pluggable predicate so the markers can change without touching the
orchestrator.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Tuple

from .config import ENTRY_SCRIPT
from .errors import PatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchSignature:
    """Substring markers left by the injection wrapper."""
    markers: Tuple[str, ...] = ("DZ_DEVTOOLS", "[inject]")

    def __call__(self, text: str) -> bool:
        return any(marker in text for marker in self.markers)


DEFAULT_SIGNATURE = PatchSignature()


class PatchDetector:
    """Extract a throwaway copy of an archive and inspect its entry script."""

    def __init__(self, codec, signature: Callable[[str], bool] = DEFAULT_SIGNATURE):
        self.codec = codec
        self.signature = signature

    def entry_is_patched(self, tree: Path) -> bool:
        """Check an already extracted tree. Missing entry script means no."""
        entry = tree / ENTRY_SCRIPT
        if not entry.is_file():
            logger.info(f"No entry script at {entry}, treating archive as unpatched")
            return False
        try:
            content = entry.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read {entry}: {e}")
            return False
        return bool(self.signature(content))

    def is_patched(self, archive_path: Path) -> bool:
        """
        Check an archive for the patch signature.
        
        Args:
            archive_path: Archive to inspect
            
        Returns:
            True if the entry script matches the signature; False when it
            does not, is missing, or the archive could not be read
        """
        try:
            with tempfile.TemporaryDirectory(prefix="deezer-check-") as scratch:
                tree = Path(scratch) / "extracted"
                self.codec.extract(archive_path, tree, quiet=True)
                return self.entry_is_patched(tree)
        except (PatchError, OSError) as e:
            logger.warning(f"Could not check patch signature: {e}")
            return False
