"""
Session journal utilities (NDJSON format).
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .state import create_session_dir, get_session_dir

logger = logging.getLogger(__name__)


def emit_event(session_id: str, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
    """
    Append an event to the session's events.ndjson file.
    
    Journal failures are logged and swallowed: a read-only home directory
    must never abort a patch run.
    
    Args:
        session_id: Session ID
        event_type: Event type (e.g., "INIT", "STEP_START", "ERROR")
        data: Event data
    """
    event = {
        "ts": datetime.now().isoformat(),
        "type": event_type,
        "data": data or {}
    }
    
    try:
        events_file = create_session_dir(session_id) / "events.ndjson"
        with open(events_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, default=str) + "\n")
            f.flush()
    except OSError as e:
        logger.warning(f"Could not write journal event {event_type} for {session_id}: {e}")


def read_events(session_id: str) -> List[Dict[str, Any]]:
    """
    Read all events from a session's events.ndjson file.
    
    Args:
        session_id: Session ID
        
    Returns:
        List of events
    """
    events_file = get_session_dir(session_id) / "events.ndjson"
    
    if not events_file.exists():
        return []
    
    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue  # Skip malformed lines
    
    return events


def get_last_event(session_id: str) -> Optional[Dict[str, Any]]:
    """
    Get the last event from a session's journal.
    
    Args:
        session_id: Session ID
        
    Returns:
        Last event or None if no events
    """
    events = read_events(session_id)
    return events[-1] if events else None


def get_status_from_events(session_id: str) -> str:
    """
    Determine session status from its journal.
    
    Args:
        session_id: Session ID
        
    Returns:
        Status string
    """
    last_event = get_last_event(session_id)
    if not last_event:
        return "unknown"
    
    event_type = last_event.get("type", "")
    
    status_map = {
        EventTypes.INIT: "running",
        EventTypes.STEP_START: "running",
        EventTypes.STEP_DONE: "running",
        EventTypes.DECISION: "running",
        EventTypes.WORKSPACE_REMOVED: "running",
        EventTypes.ERROR: "failed",
        EventTypes.CANCELLED: "cancelled",
        EventTypes.DONE: "patched",
        EventTypes.RESTORED: "restored",
    }
    
    return status_map.get(event_type, "unknown")


# Predefined event types for consistency
class EventTypes:
    INIT = "INIT"
    STEP_START = "STEP_START"
    STEP_DONE = "STEP_DONE"
    DECISION = "DECISION"
    WORKSPACE_REMOVED = "WORKSPACE_REMOVED"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"
    DONE = "DONE"
    RESTORED = "RESTORED"
