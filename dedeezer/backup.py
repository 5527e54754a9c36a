"""
Backup manager: owns the single pristine copy of the archive.
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path

from .errors import InstallationError, StepError
from .workspace import atomic_replace

logger = logging.getLogger(__name__)


class BackupDecision(str, Enum):
    SKIP = "skip"      # a backup already exists and is kept as is
    CREATE = "create"  # the live archive was copied to the backup path
    REUSE = "reuse"    # the backup is the extraction source for a re-patch


def ensure_backup(live_archive: Path, backup_path: Path, reuse_existing: bool) -> BackupDecision:
    """
    Make sure a pristine backup exists without ever overwriting one.
    
    Args:
        live_archive: The installation's archive
        backup_path: Fixed backup location next to it
        reuse_existing: True when re-patching from the backup
        
    Returns:
        The decision taken
        
    Raises:
        StepError: If reuse was requested but the backup is gone
        InstallationError: If a backup must be created but the archive is missing
    """
    if reuse_existing:
        if not backup_path.is_file():
            raise StepError(f"Backup file not found at: {backup_path}")
        logger.info(f"Using existing backup {backup_path} for repatching")
        return BackupDecision.REUSE
    
    if backup_path.exists():
        logger.info(f"Backup already exists at {backup_path}, keeping it")
        return BackupDecision.SKIP
    
    if not live_archive.is_file():
        raise InstallationError(f"Deezer asar file not found at: {live_archive}")
    
    shutil.copy2(live_archive, backup_path)
    logger.info(f"Backup created: {backup_path}")
    return BackupDecision.CREATE


def restore_backup(live_archive: Path, backup_path: Path) -> None:
    """
    Put the pristine archive back in place. The backup is kept.
    
    Args:
        live_archive: The installation's archive
        backup_path: Backup created by an earlier patch run
        
    Raises:
        InstallationError: If there is no backup to restore from
    """
    if not backup_path.is_file():
        raise InstallationError(f"No backup found at: {backup_path}")
    
    atomic_replace(backup_path, live_archive)
    logger.info(f"Restored {live_archive} from {backup_path}")
