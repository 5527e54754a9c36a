from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class PatchOutcome:
    session_id: str
    status: str  # "patched" | "cancelled" | "failed"
    live_archive: str
    backup_path: str
    backup_decision: Optional[str] = None
    reused_backup: bool = False
    failed_step: Optional[str] = None
    error: Optional[str] = None
    steps: List[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.status == "failed" else 0
