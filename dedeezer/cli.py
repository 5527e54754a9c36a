"""
Click CLI interface for DeDeezer.
"""

import logging
import sys
from typing import Optional

import click

from . import __version__
from .backup import restore_backup
from .codec import AsarCodec
from .config import get_settle_seconds, resolve_installation
from .detector import PatchDetector
from .errors import PatchError
from .events import EventTypes, emit_event, get_status_from_events, read_events
from .orchestrator import PatchOrchestrator
from .package_manager import detect_package_manager
from .process import ProcessController
from .session import new_session
from .state import list_sessions, new_session_id, prune_sessions

MACOS_SETUP = """🍎 macOS Setup Instructions:
1. Install Deezer from the Mac App Store or deezer.com
2. Check that /Applications/Deezer.app/Contents/Resources/app.asar exists,
   or point DEDEEZER_RESOURCES_DIR at the folder holding app.asar
3. Run `dedeezer status` to confirm the paths
4. You may need to disable SIP or re-sign the app after patching"""

LINUX_SETUP = """🐧 Linux Setup Instructions:
1. Install Deezer using your package manager or AppImage
2. Find the Deezer resources directory (usually /opt/deezer-desktop/resources)
3. Export DEDEEZER_RESOURCES_DIR if it lives somewhere else
4. Ensure you have write permissions to the Deezer directory"""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--setup-macos", is_flag=True, help="Show macOS setup instructions")
@click.option("--setup-linux", is_flag=True, help="Show Linux setup instructions")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(__version__, prog_name="dedeezer")
@click.pass_context
def main(ctx, setup_macos: bool, setup_linux: bool, verbose: bool):
    """
    DeDeezer - patch the Deezer desktop client with an ad blocker.

    Running without a command patches the installation (same as `run`).
    """
    _configure_logging(verbose)

    if setup_macos:
        click.echo(MACOS_SETUP)
        ctx.exit(0)
    if setup_linux:
        click.echo(LINUX_SETUP)
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Repatch from the backup without asking")
def run(assume_yes: bool = False):
    """Patch the installed Deezer client."""
    try:
        session = new_session()
        settle_seconds = get_settle_seconds()
    except (PatchError, ValueError) as e:
        _fail(str(e))

    orchestrator = PatchOrchestrator(
        session,
        process_controller=ProcessController(session.platform, settle_seconds=settle_seconds),
    )
    if assume_yes:
        orchestrator.confirm = lambda prompt: True
    outcome = orchestrator.run()
    sys.exit(outcome.exit_code)


@main.command()
def status():
    """Show installation paths, backup and patch state."""
    try:
        paths = resolve_installation()
        package_manager = detect_package_manager()
    except (PatchError, ValueError) as e:
        _fail(str(e))

    click.echo(f"📱 Platform: {paths.platform}")
    click.echo(f"📁 Resources: {paths.resources_dir}")
    click.echo(f"📦 Live archive: {paths.archive_path} ({'present' if paths.archive_path.is_file() else 'missing'})")
    click.echo(f"🗄️  Backup: {paths.backup_path} ({'present' if paths.backup_path.is_file() else 'missing'})")

    if paths.archive_path.is_file():
        detector = PatchDetector(AsarCodec(package_manager))
        patched = detector.is_patched(paths.archive_path)
        click.echo(f"🔍 Patched: {'yes' if patched else 'no'}")


@main.command()
def restore():
    """Restore the original archive from the backup."""
    try:
        paths = resolve_installation()
        settle_seconds = get_settle_seconds()
    except (PatchError, ValueError) as e:
        _fail(str(e))

    session_id = new_session_id()
    emit_event(session_id, EventTypes.INIT, {"command": "restore", "archive": str(paths.archive_path)})

    controller = ProcessController(paths.platform, settle_seconds=settle_seconds)
    controller.terminate(paths.executable)

    try:
        restore_backup(paths.archive_path, paths.backup_path)
    except (PatchError, OSError) as e:
        emit_event(session_id, EventTypes.ERROR, {"reason": str(e)})
        _fail(f"Restore failed: {e}")

    emit_event(session_id, EventTypes.RESTORED, {"backup": str(paths.backup_path)})
    click.echo(f"✅ Original asar restored from {paths.backup_path}")
    click.echo("📦 Backup file was kept.")


@main.command()
@click.option("--limit", default=10, show_default=True, help="Number of sessions to show")
@click.option("--prune", "keep", type=click.IntRange(min=0), default=None, help="Delete all but the KEEP most recent sessions")
def history(limit: int, keep: Optional[int]):
    """List previous patch sessions."""
    if keep is not None:
        removed = prune_sessions(keep)
        click.echo(f"🧹 Removed {len(removed)} session(s)")

    sessions = list_sessions()[:limit]
    if not sessions:
        click.echo("No sessions recorded yet.")
        return

    for session_id in sessions:
        events = read_events(session_id)
        reason: Optional[str] = None
        if events and events[-1].get("type") == EventTypes.ERROR:
            reason = events[-1].get("data", {}).get("reason")
        line = f"{session_id}  {get_status_from_events(session_id)}"
        if reason:
            line += f"  ({reason})"
        click.echo(line)


if __name__ == "__main__":
    main()
