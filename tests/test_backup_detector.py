"""
Tests for the backup manager and the patch detector.
"""

import os

import pytest

from conftest import ORIGINAL_MAIN, PATCHED_MAIN, FailingCodec, ZipCodec, make_archive
from dedeezer.backup import BackupDecision, ensure_backup, restore_backup
from dedeezer.config import wrapper_source
from dedeezer.detector import DEFAULT_SIGNATURE, PatchDetector, PatchSignature
from dedeezer.errors import InstallationError, StepError


class TestEnsureBackup:
    def test_creates_byte_identical_copy(self, tmp_path):
        live = tmp_path / "app.asar"
        live.write_bytes(b"\x00asar\xffpayload")
        backup = tmp_path / "app.bak.asar"

        assert ensure_backup(live, backup, reuse_existing=False) == BackupDecision.CREATE
        assert backup.read_bytes() == live.read_bytes()

    def test_second_call_never_changes_backup(self, tmp_path):
        live = tmp_path / "app.asar"
        live.write_bytes(b"original")
        backup = tmp_path / "app.bak.asar"
        ensure_backup(live, backup, reuse_existing=False)
        mtime = os.stat(backup).st_mtime_ns

        live.write_bytes(b"patched since")
        assert ensure_backup(live, backup, reuse_existing=False) == BackupDecision.SKIP
        assert backup.read_bytes() == b"original"
        assert os.stat(backup).st_mtime_ns == mtime

    def test_reuse_does_not_touch_live_archive(self, tmp_path):
        backup = tmp_path / "app.bak.asar"
        backup.write_bytes(b"pristine")
        live = tmp_path / "app.asar"  # deliberately missing

        assert ensure_backup(live, backup, reuse_existing=True) == BackupDecision.REUSE
        assert not live.exists()
        assert backup.read_bytes() == b"pristine"

    def test_reuse_without_backup_fails(self, tmp_path):
        with pytest.raises(StepError, match="Backup file not found"):
            ensure_backup(tmp_path / "app.asar", tmp_path / "app.bak.asar", reuse_existing=True)

    def test_missing_live_archive(self, tmp_path):
        with pytest.raises(InstallationError):
            ensure_backup(tmp_path / "app.asar", tmp_path / "app.bak.asar", reuse_existing=False)


class TestRestoreBackup:
    def test_restores_and_keeps_backup(self, tmp_path):
        live = tmp_path / "app.asar"
        live.write_bytes(b"patched")
        backup = tmp_path / "app.bak.asar"
        backup.write_bytes(b"pristine")

        restore_backup(live, backup)

        assert live.read_bytes() == b"pristine"
        assert backup.read_bytes() == b"pristine"
        assert not (tmp_path / "app.asar.dedeezer-tmp").exists()

    def test_missing_backup(self, tmp_path):
        live = tmp_path / "app.asar"
        live.write_bytes(b"patched")
        with pytest.raises(InstallationError, match="No backup"):
            restore_backup(live, tmp_path / "app.bak.asar")
        assert live.read_bytes() == b"patched"


class TestSignature:
    def test_default_markers(self):
        assert DEFAULT_SIGNATURE("if (process.env.DZ_DEVTOOLS !== 'yes') {}")
        assert DEFAULT_SIGNATURE("console.log('[inject] loaded')")
        assert not DEFAULT_SIGNATURE(ORIGINAL_MAIN)

    def test_custom_markers(self):
        signature = PatchSignature(markers=("/* patched */",))
        assert signature("/* patched */ main()")
        assert not signature("console.log('[inject]')")

    def test_shipped_wrapper_carries_signature(self):
        assert DEFAULT_SIGNATURE(wrapper_source().read_text(encoding="utf-8"))

    def test_shipped_wrapper_requires_original_entry(self):
        text = wrapper_source().read_text(encoding="utf-8")
        assert "main.original.js" in text
        assert "DZ_DISABLE_UPDATE" in text
        assert "module.exports = originalExports" in text

    def test_shipped_wrapper_replays_ready_arguments(self):
        text = wrapper_source().read_text(encoding="utf-8")
        assert "nativeOnce('ready', (...args) => resolve(args))" in text
        assert "gate.drain(args)" in text
        assert "gate.drain([])" not in text


class TestPatchDetector:
    def test_marker_means_patched(self, tmp_path):
        archive = make_archive(tmp_path, "patched", main_js=PATCHED_MAIN)
        assert PatchDetector(ZipCodec()).is_patched(archive) is True

    def test_no_marker_means_not_patched(self, tmp_path):
        archive = make_archive(tmp_path, "clean")
        assert PatchDetector(ZipCodec()).is_patched(archive) is False

    def test_missing_entry_script_is_not_an_error(self, tmp_path):
        archive = make_archive(tmp_path, "odd", main_js=None)
        assert PatchDetector(ZipCodec()).is_patched(archive) is False

    def test_codec_failure_is_not_patched(self, tmp_path):
        archive = make_archive(tmp_path, "clean")
        assert PatchDetector(FailingCodec("extract")).is_patched(archive) is False

    def test_scratch_directory_is_removed(self, tmp_path):
        archive = make_archive(tmp_path, "patched", main_js=PATCHED_MAIN)
        codec = ZipCodec()
        PatchDetector(codec).is_patched(archive)

        _, dest = codec.extracted[0]
        assert not dest.exists()
        assert not dest.parent.exists()

    def test_pluggable_signature(self, tmp_path):
        archive = make_archive(tmp_path, "clean")
        detector = PatchDetector(ZipCodec(), signature=lambda text: "deezer bootstrap" in text)
        assert detector.is_patched(archive) is True


def test_pack_of_unmodified_tree_keeps_entry_script(tmp_path):
    archive = make_archive(tmp_path, "original")
    codec = ZipCodec()
    codec.extract(archive, tmp_path / "once")
    codec.pack(tmp_path / "once", tmp_path / "repacked.asar")
    codec.extract(tmp_path / "repacked.asar", tmp_path / "twice")

    first = (tmp_path / "once" / "build" / "main.js").read_bytes()
    second = (tmp_path / "twice" / "build" / "main.js").read_bytes()
    assert first == second == ORIGINAL_MAIN.encode()
