"""
Patch session model.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .config import InstallationPaths, resolve_installation
from .package_manager import detect_package_manager
from .state import new_session_id
from .workspace import ScratchWorkspace, workspace_path


@dataclass
class PatchSession:
    """State of one patch invocation."""
    session_id: str
    paths: InstallationPaths
    workspace: ScratchWorkspace
    package_manager: str
    use_existing_backup: bool = False

    @property
    def platform(self) -> str:
        return self.paths.platform

    @property
    def extraction_source(self) -> Path:
        # Re-patching always starts from the pristine backup
        if self.use_existing_backup:
            return self.paths.backup_path
        return self.paths.archive_path


def new_session(
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    temp_base: Optional[Path] = None,
) -> PatchSession:
    """
    Build a session for the current machine.
    
    Args:
        platform: Override the detected platform
        env: Environment mapping (defaults to os.environ)
        temp_base: Parent directory of the scratch workspace
        
    Returns:
        A fresh PatchSession
    """
    env = os.environ if env is None else env
    session_id = new_session_id()
    return PatchSession(
        session_id=session_id,
        paths=resolve_installation(platform, env),
        workspace=ScratchWorkspace(workspace_path(session_id, temp_base)),
        package_manager=detect_package_manager(env),
    )
