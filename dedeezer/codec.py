"""
Archive codec backed by the @electron/asar command line tool.

Only the directory-tree contract matters to the rest of the package:
extract(archive, dest) materializes the tree under dest, pack(src, archive)
writes a single archive file. Any failure raises ToolError.
"""

from pathlib import Path
from typing import List, Optional

from .package_manager import tool_runner
from .tools import run_tool

ASAR_PACKAGE = "@electron/asar"


class AsarCodec:
    """Extract and pack asar archives through a package manager runner."""

    def __init__(self, package_manager: str = "npm", runner: Optional[List[str]] = None):
        self.package_manager = package_manager
        self.runner = runner or tool_runner(package_manager)

    def _command(self, *args: str) -> List[str]:
        return self.runner + [ASAR_PACKAGE] + list(args)

    def extract(self, archive: Path, dest: Path, quiet: bool = False) -> None:
        run_tool(self._command("extract", str(archive), str(dest)), quiet=quiet)

    def pack(self, src: Path, archive: Path, quiet: bool = False) -> None:
        run_tool(self._command("pack", str(src), str(archive)), quiet=quiet)
