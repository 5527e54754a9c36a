"""
Dependency installer: materialize runtime packages into the unpacked tree.

npm is always used here, whatever package manager launched the patcher.
pnpm and yarn lay node_modules out with symlinks, which break once the tree
is packed into an archive.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from .config import ADBLOCK_PACKAGES
from .tools import run_tool

logger = logging.getLogger(__name__)


class NpmInstaller:
    """Refresh node_modules of an extracted application tree."""

    def __init__(self, npm: str = "npm", packages: Optional[List[str]] = None):
        self.npm = npm
        self.packages = list(packages if packages is not None else ADBLOCK_PACKAGES)

    def refresh(self, tree: Path) -> bool:
        """
        Drop stale dependencies and install the ad-block engine plus the
        application's own production dependencies.
        
        Args:
            tree: Extracted application tree
            
        Returns:
            False if the tree has no package.json and nothing was installed
            
        Raises:
            ToolError: If npm fails
        """
        node_modules = tree / "node_modules"
        if node_modules.exists():
            logger.info(f"Removing existing {node_modules}")
            shutil.rmtree(node_modules)
        
        if not (tree / "package.json").is_file():
            logger.warning(f"No package.json in {tree}, skipping dependency installation")
            return False
        
        env = {"NODE_ENV": "production"}
        if self.packages:
            run_tool([self.npm, "install", "--save"] + self.packages, cwd=tree, env=env)
        run_tool([self.npm, "install", "--omit=dev"], cwd=tree, env=env)
        return True
