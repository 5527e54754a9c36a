"""
Scratch workspace bookkeeping and filesystem helpers.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "deezer-patch-"


def workspace_path(session_id: str, base: Optional[Path] = None) -> Path:
    """Scratch directory for a session under the system temp location."""
    base = base or Path(tempfile.gettempdir())
    return base / f"{WORKSPACE_PREFIX}{session_id}"


class ScratchWorkspace:
    """Disposable directory holding the unpacked tree during mutation."""

    def __init__(self, root: Path):
        self.root = Path(root)

    @property
    def extracted_dir(self) -> Path:
        return self.root / "extracted"

    @property
    def packed_archive(self) -> Path:
        return self.root / "app.new.asar"

    def exists(self) -> bool:
        return self.root.exists()

    def prepare(self) -> Path:
        """Create a fresh workspace, discarding a leftover with the same name."""
        if self.root.exists():
            logger.warning(f"Removing leftover workspace {self.root}")
            shutil.rmtree(self.root)
        self.root.mkdir(parents=True)
        return self.root

    def remove(self) -> bool:
        """Delete the workspace. Returns True if there was anything to delete."""
        if not self.root.exists():
            return False
        shutil.rmtree(self.root, ignore_errors=True)
        if self.root.exists():
            # Something (antivirus, an open handle) held on; try once more loudly
            shutil.rmtree(self.root)
        return True


def atomic_replace(src: Path, dest: Path) -> None:
    """
    Replace dest with a copy of src.
    
    The copy is staged next to dest and renamed over it, so dest is either
    the old file or the complete new one.
    
    Args:
        src: File to install
        dest: File to replace
    """
    staged = dest.with_name(dest.name + ".dedeezer-tmp")
    try:
        shutil.copyfile(src, staged)
        os.replace(staged, dest)
    except BaseException:
        if staged.exists():
            staged.unlink()
        raise
