"""
Patch orchestrator: the step-by-step pipeline that patches an installation.

The steps run strictly in order, each one relying on the previous one's
result. Nothing before InstallPatchedArchive writes to the live archive, so
a run that fails earlier can simply be repeated. Whatever happens, the
scratch workspace is removed before run() returns.
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import click

from .backup import BackupDecision, ensure_backup
from .codec import AsarCodec
from .config import ENTRY_SCRIPT, ORIGINAL_ENTRY_SCRIPT, wrapper_source
from .detector import PatchDetector
from .errors import AmbiguousStateError, InstallationError, PatchCancelled, StepError
from .events import EventTypes, emit_event
from .installer import NpmInstaller
from .process import ProcessController
from .report import PatchOutcome
from .session import PatchSession
from .workspace import atomic_replace

logger = logging.getLogger(__name__)

REPATCH_PROMPT = "Deezer is already patched. Do you want to repatch using the backup file?"


class PatchStep(str, Enum):
    KILL_TARGET = "KillTarget"
    DETECT_EXISTING_PATCH = "DetectExistingPatch"
    CREATE_OR_REUSE_BACKUP = "CreateOrReuseBackup"
    PREPARE_WORKSPACE = "PrepareWorkspace"
    EXTRACT_ARCHIVE = "ExtractArchive"
    ISOLATE_ORIGINAL_ENTRY = "IsolateOriginalEntry"
    INSTALL_INJECTED_ENTRY = "InstallInjectedEntry"
    REFRESH_DEPENDENCIES = "RefreshDependencies"
    REPACK_ARCHIVE = "RepackArchive"
    INSTALL_PATCHED_ARCHIVE = "InstallPatchedArchive"
    CLEANUP = "Cleanup"


STEP_LABELS = {
    PatchStep.KILL_TARGET: "Checking for running Deezer processes",
    PatchStep.DETECT_EXISTING_PATCH: "Checking if Deezer is already patched",
    PatchStep.CREATE_OR_REUSE_BACKUP: "Creating backup of original asar file",
    PatchStep.PREPARE_WORKSPACE: "Creating temporary folder",
    PatchStep.EXTRACT_ARCHIVE: "Extracting asar file",
    PatchStep.ISOLATE_ORIGINAL_ENTRY: "Renaming original main.js",
    PatchStep.INSTALL_INJECTED_ENTRY: "Copying patched main.js",
    PatchStep.REFRESH_DEPENDENCIES: "Adding ad-block dependencies",
    PatchStep.REPACK_ARCHIVE: "Repacking asar file",
    PatchStep.INSTALL_PATCHED_ARCHIVE: "Copying patched asar back to Deezer",
    PatchStep.CLEANUP: "Cleaning up temporary files",
}


def _default_confirm(prompt: str) -> bool:
    return click.confirm(prompt, default=False)


class PatchOrchestrator:
    """Runs the patch pipeline for one session."""

    def __init__(
        self,
        session: PatchSession,
        codec=None,
        installer=None,
        process_controller: Optional[ProcessController] = None,
        detector: Optional[PatchDetector] = None,
        confirm: Callable[[str], bool] = _default_confirm,
        echo: Callable[..., None] = click.echo,
        wrapper: Optional[Path] = None,
    ):
        self.session = session
        self.codec = codec or AsarCodec(session.package_manager)
        self.installer = installer or NpmInstaller()
        self.process_controller = process_controller or ProcessController(session.platform)
        self.detector = detector or PatchDetector(self.codec)
        self.confirm = confirm
        self.echo = echo
        self.wrapper = Path(wrapper) if wrapper else wrapper_source()
        self.backup_decision: Optional[BackupDecision] = None
        self.completed: List[PatchStep] = []

    @property
    def paths(self):
        return self.session.paths

    @property
    def workspace(self):
        return self.session.workspace

    def _pipeline(self) -> List[Tuple[PatchStep, Callable[[], str]]]:
        return [
            (PatchStep.KILL_TARGET, self.kill_target),
            (PatchStep.DETECT_EXISTING_PATCH, self.detect_existing_patch),
            (PatchStep.CREATE_OR_REUSE_BACKUP, self.create_or_reuse_backup),
            (PatchStep.PREPARE_WORKSPACE, self.prepare_workspace),
            (PatchStep.EXTRACT_ARCHIVE, self.extract_archive),
            (PatchStep.ISOLATE_ORIGINAL_ENTRY, self.isolate_original_entry),
            (PatchStep.INSTALL_INJECTED_ENTRY, self.install_injected_entry),
            (PatchStep.REFRESH_DEPENDENCIES, self.refresh_dependencies),
            (PatchStep.REPACK_ARCHIVE, self.repack_archive),
            (PatchStep.INSTALL_PATCHED_ARCHIVE, self.install_patched_archive),
        ]

    def run(self) -> PatchOutcome:
        """
        Execute the whole pipeline.

        Returns:
            PatchOutcome with status "patched", "cancelled" or "failed"
        """
        session = self.session
        emit_event(session.session_id, EventTypes.INIT, {
            "platform": session.platform,
            "archive": str(self.paths.archive_path),
            "backup": str(self.paths.backup_path),
            "workspace": str(self.workspace.root),
            "package_manager": session.package_manager,
        })
        self.echo("🔧 DeDeezer Auto-Patcher")
        self.echo(f"📱 Platform: {session.platform}")
        self.echo(f"📦 Package Manager: {session.package_manager}")
        self.echo(f"📁 Temp Directory: {self.workspace.root}")
        self.echo("\n🚀 Starting DeDeezer patching process...")

        current: Optional[PatchStep] = None
        cancelled: Optional[PatchCancelled] = None
        failure: Optional[Exception] = None
        interrupted = False
        try:
            for step, handler in self._pipeline():
                current = step
                self._run_step(step, handler)
        except PatchCancelled as e:
            cancelled = e
        except Exception as e:
            failure = e
            logger.error(f"Step {current.value if current else '?'} failed: {e}")
            logger.debug("Step failure traceback", exc_info=True)
            self.echo(f"\n❌ Error during patching ({current.value}): {e}", err=True)
        except KeyboardInterrupt:
            interrupted = True
            raise
        finally:
            self._cleanup()
            if interrupted:
                emit_event(session.session_id, EventTypes.CANCELLED, {
                    "step": current.value if current else None,
                    "interrupted": True,
                })

        if cancelled is not None:
            self.echo(f"❌ {cancelled}")
            emit_event(session.session_id, EventTypes.CANCELLED, {"step": current.value})
            return self._outcome("cancelled")

        if failure is not None:
            emit_event(session.session_id, EventTypes.ERROR, {
                "step": current.value if current else None,
                "reason": str(failure),
                "error_type": type(failure).__name__,
            })
            return self._outcome("failed", failed_step=current, error=str(failure))

        self.echo("\n✅ DeDeezer patching completed successfully!")
        self.echo("🎵 You can now run Deezer with ad blocking enabled.")
        outcome = self._outcome("patched")
        emit_event(session.session_id, EventTypes.DONE, {
            "backup_decision": outcome.backup_decision,
            "reused_backup": outcome.reused_backup,
        })
        return outcome

    def _run_step(self, step: PatchStep, handler: Callable[[], str]) -> None:
        self.echo(f"\n📋 {step.value}: {STEP_LABELS[step]}...")
        emit_event(self.session.session_id, EventTypes.STEP_START, {"step": step.value})
        result = handler()
        self.completed.append(step)
        emit_event(self.session.session_id, EventTypes.STEP_DONE, {"step": step.value, "result": result})
        self.echo(f"✅ {result}")

    def _cleanup(self) -> None:
        self.echo(f"\n📋 {PatchStep.CLEANUP.value}: {STEP_LABELS[PatchStep.CLEANUP]}...")
        try:
            removed = self.workspace.remove()
        except OSError as e:
            logger.error(f"Could not remove workspace {self.workspace.root}: {e}")
            self.echo(f"⚠️  Could not remove {self.workspace.root}: {e}", err=True)
            return
        if removed:
            emit_event(self.session.session_id, EventTypes.WORKSPACE_REMOVED, {"path": str(self.workspace.root)})
            self.echo(f"🧹 Removed {self.workspace.root}")
        else:
            self.echo("🧹 Nothing to clean up")

    def _outcome(self, status: str, failed_step: Optional[PatchStep] = None, error: Optional[str] = None) -> PatchOutcome:
        return PatchOutcome(
            session_id=self.session.session_id,
            status=status,
            live_archive=str(self.paths.archive_path),
            backup_path=str(self.paths.backup_path),
            backup_decision=self.backup_decision.value if self.backup_decision else None,
            reused_backup=self.session.use_existing_backup,
            failed_step=failed_step.value if failed_step else None,
            error=error,
            steps=[s.value for s in self.completed],
        )

    # Steps. Each returns the line printed once it has completed.

    def kill_target(self) -> str:
        result = self.process_controller.terminate(self.paths.executable)
        emit_event(self.session.session_id, EventTypes.DECISION, {"terminate": result.value})
        return {
            "not_running": "Deezer is not running",
            "graceful": "Deezer closed gracefully",
            "forced": "Deezer force closed",
            "failed": "Could not check/kill Deezer process, continuing",
        }[result.value]

    def detect_existing_patch(self) -> str:
        archive = self.paths.archive_path
        backup = self.paths.backup_path
        if not archive.is_file():
            raise InstallationError(f"Deezer asar file not found at: {archive}")

        if not self.detector.is_patched(archive):
            self.session.use_existing_backup = False
            return "Deezer is not patched yet"

        self.echo("🔍 Deezer appears to already be patched!")
        if not backup.is_file():
            raise AmbiguousStateError(
                f"Deezer is already patched and no backup was found at {backup}. "
                "Cannot safely repatch; please restore the original Deezer installation first."
            )

        self.echo(f"📦 Found existing backup file: {backup}")
        try:
            confirmed = self.confirm(REPATCH_PROMPT)
        except click.Abort:
            confirmed = False
        emit_event(self.session.session_id, EventTypes.DECISION, {"repatch_confirmed": confirmed})
        if not confirmed:
            raise PatchCancelled("Patching cancelled by user.")

        self.session.use_existing_backup = True
        return "Using existing backup for repatching"

    def create_or_reuse_backup(self) -> str:
        self.backup_decision = ensure_backup(
            self.paths.archive_path,
            self.paths.backup_path,
            self.session.use_existing_backup,
        )
        return {
            BackupDecision.CREATE: f"Backup created: {self.paths.backup_path}",
            BackupDecision.SKIP: f"Backup already exists, keeping original: {self.paths.backup_path}",
            BackupDecision.REUSE: "Using existing backup file for repatching",
        }[self.backup_decision]

    def prepare_workspace(self) -> str:
        root = self.workspace.prepare()
        return f"Temporary folder created: {root}"

    def extract_archive(self) -> str:
        source = self.session.extraction_source
        if not source.is_file():
            raise StepError(f"Archive to extract not found at: {source}")
        origin = "backup file" if self.session.use_existing_backup else "current asar file"
        self.echo(f"📦 Extracting from {origin}: {source}")
        self.codec.extract(source, self.workspace.extracted_dir)
        return f"Asar extracted to: {self.workspace.extracted_dir}"

    def isolate_original_entry(self) -> str:
        original = self.workspace.extracted_dir / ENTRY_SCRIPT
        renamed = self.workspace.extracted_dir / ORIGINAL_ENTRY_SCRIPT
        if not original.is_file():
            raise StepError(f"Original main.js not found at: {original}")
        original.rename(renamed)
        return f"Renamed {ENTRY_SCRIPT.name} to {ORIGINAL_ENTRY_SCRIPT.name}"

    def install_injected_entry(self) -> str:
        if not self.wrapper.is_file():
            raise StepError(f"Patched main.js not found at: {self.wrapper}")
        shutil.copyfile(self.wrapper, self.workspace.extracted_dir / ENTRY_SCRIPT)
        return "Copied patched main.js"

    def refresh_dependencies(self) -> str:
        if self.installer.refresh(self.workspace.extracted_dir):
            return "All dependencies installed"
        return "No package.json found, skipped dependency installation"

    def repack_archive(self) -> str:
        self.codec.pack(self.workspace.extracted_dir, self.workspace.packed_archive)
        return f"Asar repacked: {self.workspace.packed_archive}"

    def install_patched_archive(self) -> str:
        packed = self.workspace.packed_archive
        if not packed.is_file():
            raise StepError(f"Repacked asar not found at: {packed}")
        atomic_replace(packed, self.paths.archive_path)
        return f"Patched asar copied to: {self.paths.archive_path}"
