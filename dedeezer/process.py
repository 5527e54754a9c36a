"""
Process controller: stop a running client before its archive is touched.

Everything here is best-effort. A client that cannot be detected or killed
is logged and ignored; later steps that need the archive will fail with a
clearer error if it is still locked.
"""

from __future__ import annotations

import logging
import subprocess
import time
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class TerminationResult(str, Enum):
    NOT_RUNNING = "not_running"
    GRACEFUL = "graceful"
    FORCED = "forced"
    FAILED = "failed"


def _default_run(command: List[str]) -> subprocess.CompletedProcess:
    # tasklist prints in the console code page, which need not match the locale
    return subprocess.run(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )


class ProcessController:
    """Detect and terminate a client instance by image name."""

    def __init__(
        self,
        platform: str,
        settle_seconds: float = 2.0,
        run: Callable[[List[str]], subprocess.CompletedProcess] = _default_run,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.platform = platform
        self.settle_seconds = settle_seconds
        self._run = run
        self._sleep = sleep

    # Windows: tasklist / taskkill

    def _win_is_running(self, image_name: str) -> bool:
        result = self._run(["tasklist", "/FI", f"IMAGENAME eq {image_name}", "/NH"])
        return result.returncode == 0 and image_name.lower() in (result.stdout or "").lower()

    def _win_kill(self, image_name: str, force: bool) -> bool:
        command = ["taskkill", "/IM", image_name, "/T"]
        if force:
            command.append("/F")
        return self._run(command).returncode == 0

    # macOS / Linux: pgrep / pkill

    def _posix_is_running(self, image_name: str) -> bool:
        return self._run(["pgrep", "-x", image_name]).returncode == 0

    def _posix_kill(self, image_name: str, force: bool) -> bool:
        signal_flag = "-KILL" if force else "-TERM"
        if self._run(["pkill", signal_flag, "-x", image_name]).returncode != 0:
            return False
        if force:
            return True
        # SIGTERM is only a request; check it was honoured
        self._sleep(self.settle_seconds)
        return not self._posix_is_running(image_name)

    def is_running(self, image_name: str) -> bool:
        if self.platform == "win32":
            return self._win_is_running(image_name)
        return self._posix_is_running(image_name)

    def _kill(self, image_name: str, force: bool) -> bool:
        if self.platform == "win32":
            return self._win_kill(image_name, force)
        return self._posix_kill(image_name, force)

    def terminate(self, image_name: str) -> TerminationResult:
        """
        Stop every instance of image_name, gracefully first.
        
        Args:
            image_name: Executable image name (e.g. "Deezer.exe")
            
        Returns:
            What happened; never raises
        """
        try:
            if not self.is_running(image_name):
                logger.info(f"{image_name} is not running")
                return TerminationResult.NOT_RUNNING
            
            logger.info(f"{image_name} is running, attempting to close it")
            if self._kill(image_name, force=False):
                outcome = TerminationResult.GRACEFUL
            elif self._kill(image_name, force=True):
                outcome = TerminationResult.FORCED
            else:
                logger.warning(f"Could not terminate {image_name}")
                return TerminationResult.FAILED
            
            # Let the OS release file handles on the archive
            self._sleep(self.settle_seconds)
            return outcome
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not check/kill {image_name}: {e}")
            return TerminationResult.FAILED
