"""
Node package manager detection.

The detected manager only runs the archive codec. Dependencies are always
installed with npm, see installer.py.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Callable, List, Mapping, Optional

logger = logging.getLogger(__name__)

SUPPORTED = ("npm", "pnpm", "yarn")


def detect_package_manager(
    env: Optional[Mapping[str, str]] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> str:
    """
    Work out which package manager should run one-off tools.
    
    Order: DEDEEZER_PACKAGE_MANAGER, then npm_execpath (set when launched
    through a package manager script), then whatever is on PATH.
    
    Args:
        env: Environment mapping (defaults to os.environ)
        which: Executable lookup (defaults to shutil.which)
        
    Returns:
        One of "npm", "pnpm", "yarn"
    """
    env = os.environ if env is None else env
    
    forced = (env.get("DEDEEZER_PACKAGE_MANAGER") or "").strip().lower()
    if forced:
        if forced not in SUPPORTED:
            raise ValueError(f"Unsupported package manager: {forced} (expected one of {', '.join(SUPPORTED)})")
        return forced
    
    execpath = env.get("npm_execpath")
    if execpath:
        if "pnpm" in execpath:
            return "pnpm"
        if "yarn" in execpath:
            return "yarn"
        return "npm"
    
    for candidate in ("pnpm", "yarn"):
        if which(candidate):
            logger.debug(f"Found {candidate} on PATH")
            return candidate
    
    return "npm"


def tool_runner(package_manager: str) -> List[str]:
    """Command prefix that runs a package binary without installing it."""
    if package_manager == "pnpm":
        return ["pnpm", "dlx"]
    if package_manager == "yarn":
        return ["yarn", "dlx"]
    return ["npx", "--yes"]
