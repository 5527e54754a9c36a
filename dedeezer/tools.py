"""
Wrapper for external tool invocations (archive codec, npm).

Tools run synchronously. By default they inherit stdio so their progress is
visible; quiet runs capture the output and keep the tail for error reports.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from .errors import ToolError

logger = logging.getLogger(__name__)

TAIL_LINES = 40


def _resolve_executable(command: List[str]) -> List[str]:
    # npx/npm are .cmd shims on Windows and need the full path
    resolved = shutil.which(command[0])
    if resolved:
        return [resolved] + command[1:]
    return command


def run_tool(
    command: List[str],
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    quiet: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run an external tool and fail loudly if it does not succeed.
    
    Args:
        command: Command and arguments
        cwd: Working directory
        env: Extra environment variables merged over os.environ
        quiet: Capture output instead of inheriting stdio
        
    Returns:
        The completed process
        
    Raises:
        ToolError: If the tool is missing or exits non-zero
    """
    display = " ".join(command)
    logger.debug(f"Running: {display} (cwd={cwd})")
    
    full_env = None
    if env:
        full_env = {**os.environ, **env}
    
    try:
        result = subprocess.run(
            _resolve_executable(command),
            cwd=str(cwd) if cwd else None,
            env=full_env,
            stdout=subprocess.PIPE if quiet else None,
            stderr=subprocess.STDOUT if quiet else None,
            text=True,
        )
    except FileNotFoundError as e:
        raise ToolError(
            f"{command[0]} was not found. Ensure Node.js is installed and {command[0]} is on PATH.",
            command=command,
        ) from e
    except OSError as e:
        raise ToolError(f"Failed to run {display}: {e}", command=command) from e
    
    if result.returncode != 0:
        message = f"Command failed with exit code {result.returncode}: {display}"
        if quiet and result.stdout:
            tail = result.stdout.rstrip().splitlines()[-TAIL_LINES:]
            logger.debug("Last output lines:\n" + "\n".join(tail))
        raise ToolError(message, command=command, returncode=result.returncode)
    
    return result
