"""
State management for patch sessions.

Each session keeps a small directory under the DeDeezer home holding its
event journal. The live archive and its backup are the only other state
shared between sessions.

Session directories are named p-YYYYMMDD-hhmmss-xxxx: the timestamp keeps
`history` in chronological order by name, and the hex suffix separates two
runs started within the same second. The same name is reused for the scratch
workspace, so concurrent runs never share a temp folder.
"""

import logging
import os
import re
import secrets
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

SESSION_DIR_PATTERN = re.compile(r"^p-\d{8}-\d{6}-[0-9a-f]{4}$")


def new_session_id(now: Optional[datetime] = None) -> str:
    """Name for a new session directory, stamped with the local time."""
    now = now or datetime.now()
    return f"p-{now:%Y%m%d-%H%M%S}-{secrets.token_hex(2)}"


def is_session_dir_name(name: str) -> bool:
    return bool(SESSION_DIR_PATTERN.match(name))


def get_dedeezer_home() -> Path:
    """
    Get the DeDeezer home directory.
    
    Returns:
        Path: DeDeezer home directory
    """
    home = os.environ.get("DEDEEZER_HOME", str(Path.home() / ".dedeezer"))
    return Path(home).expanduser().resolve()


def get_session_dir(session_id: str) -> Path:
    """
    Get the directory for a specific session.
    
    Args:
        session_id: Session ID
        
    Returns:
        Path: Session directory
        
    Raises:
        ValueError: If the name is not a session directory name
    """
    if not is_session_dir_name(session_id):
        raise ValueError(f"Invalid session ID: {session_id}")
    
    return get_dedeezer_home() / session_id


def create_session_dir(session_id: str) -> Path:
    session_dir = get_session_dir(session_id)
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def list_sessions() -> List[str]:
    """
    List recorded sessions.
    
    Returns:
        List of session IDs, most recent first
    """
    home = get_dedeezer_home()
    
    if not home.is_dir():
        return []
    
    return sorted(
        (item.name for item in home.iterdir() if item.is_dir() and is_session_dir_name(item.name)),
        reverse=True,
    )


def cleanup_session(session_id: str) -> None:
    """Remove a session directory and its journal."""
    session_dir = get_session_dir(session_id)
    
    if session_dir.exists():
        shutil.rmtree(session_dir)


def prune_sessions(keep: int) -> List[str]:
    """
    Delete all but the most recent sessions.
    
    Args:
        keep: Number of sessions to keep
        
    Returns:
        IDs of the removed sessions
    """
    if keep < 0:
        raise ValueError(f"Cannot keep a negative number of sessions: {keep}")
    
    removed = list_sessions()[keep:]
    for session_id in removed:
        cleanup_session(session_id)
        logger.debug(f"Removed session {session_id}")
    return removed
