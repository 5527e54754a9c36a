"""
Installation layout and runtime configuration.

Everything is resolved from a per-platform table, with environment
variable overrides for non-standard installs.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from .errors import UnsupportedPlatformError

ARCHIVE_NAME = "app.asar"
BACKUP_NAME = "app.bak.asar"

# Entry-script contract inside the extracted archive
ENTRY_SCRIPT = Path("build") / "main.js"
ORIGINAL_ENTRY_SCRIPT = Path("build") / "main.original.js"

DEFAULT_SETTLE_SECONDS = 2.0

# Runtime dependencies materialized into the tree before repacking
ADBLOCK_PACKAGES = ["@ghostery/adblocker-electron", "cross-fetch"]


@dataclass(frozen=True)
class PlatformLayout:
    """Where the client lives on a given platform."""
    resources_dir: Path
    executable: str
    archive_name: str = ARCHIVE_NAME


@dataclass(frozen=True)
class InstallationPaths:
    """Resolved paths of one installation."""
    platform: str
    resources_dir: Path
    archive_path: Path
    backup_path: Path
    executable: str


def platform_layouts(home: Optional[Path] = None) -> Dict[str, PlatformLayout]:
    """Known install locations keyed by sys.platform value."""
    home = home or Path.home()
    return {
        "win32": PlatformLayout(
            resources_dir=home / "AppData" / "Local" / "Programs" / "deezer-desktop" / "resources",
            executable="Deezer.exe",
        ),
        "darwin": PlatformLayout(
            resources_dir=Path("/Applications/Deezer.app/Contents/Resources"),
            executable="Deezer",
        ),
        "linux": PlatformLayout(
            resources_dir=Path("/opt/deezer-desktop/resources"),
            executable="deezer-desktop",
        ),
    }


def normalize_platform(platform: Optional[str] = None) -> str:
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return "linux"
    return platform


def resolve_installation(
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> InstallationPaths:
    """
    Resolve the installation paths for a platform.
    
    Args:
        platform: sys.platform style identifier (defaults to the running one)
        env: Environment mapping (defaults to os.environ)
        home: User home directory (defaults to Path.home())
        
    Returns:
        InstallationPaths for the platform
        
    Raises:
        UnsupportedPlatformError: If the platform has no known layout
    """
    env = os.environ if env is None else env
    platform = normalize_platform(platform)
    layouts = platform_layouts(home)
    
    if platform not in layouts:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform}")
    
    layout = layouts[platform]
    resources_dir = layout.resources_dir
    override = env.get("DEDEEZER_RESOURCES_DIR")
    if override:
        resources_dir = Path(override).expanduser()
    
    return InstallationPaths(
        platform=platform,
        resources_dir=resources_dir,
        archive_path=resources_dir / layout.archive_name,
        backup_path=resources_dir / BACKUP_NAME,
        executable=layout.executable,
    )


def get_settle_seconds(env: Optional[Mapping[str, str]] = None) -> float:
    """Delay after killing the client, in seconds."""
    env = os.environ if env is None else env
    raw = env.get("DEDEEZER_SETTLE_SECONDS")
    if not raw:
        return DEFAULT_SETTLE_SECONDS
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"DEDEEZER_SETTLE_SECONDS must be a number, got {raw!r}")
    return max(value, 0.0)


def wrapper_source() -> Path:
    """Path of the injection wrapper shipped with the package."""
    return Path(__file__).parent / "payload" / "main.js"
