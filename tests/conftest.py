"""
Shared fixtures: in-process stand-ins for the external tools and a fake
Deezer installation under tmp_path.
"""

import shutil
import zipfile
from pathlib import Path

import pytest

from dedeezer.config import InstallationPaths
from dedeezer.errors import ToolError
from dedeezer.process import TerminationResult
from dedeezer.session import PatchSession
from dedeezer.workspace import ScratchWorkspace

ORIGINAL_MAIN = "require('./app');\nconsole.log('deezer bootstrap');\n"
PATCHED_MAIN = "process.env.DZ_DEVTOOLS = 'yes';\nconsole.log('[inject] wrapper');\n"


class ZipCodec:
    """Packs directory trees into zip files instead of asar archives."""

    def __init__(self):
        self.extracted = []
        self.packed = []

    def extract(self, archive, dest, quiet=False):
        self.extracted.append((Path(archive), Path(dest)))
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
        except (zipfile.BadZipFile, FileNotFoundError) as e:
            raise ToolError(f"extract failed: {e}", command=["asar", "extract"], returncode=1)

    def pack(self, src, archive, quiet=False):
        self.packed.append((Path(src), Path(archive)))
        write_archive(Path(archive), Path(src))


class FailingCodec(ZipCodec):
    def __init__(self, fail_on="pack"):
        super().__init__()
        self.fail_on = fail_on

    def extract(self, archive, dest, quiet=False):
        if self.fail_on == "extract":
            raise ToolError("Command failed with exit code 1: asar extract", returncode=1)
        super().extract(archive, dest, quiet)

    def pack(self, src, archive, quiet=False):
        if self.fail_on == "pack":
            raise ToolError("Command failed with exit code 1: asar pack", returncode=1)
        super().pack(src, archive, quiet)


class RecordingInstaller:
    """Pretends to run npm: drops node_modules and writes a marker package."""

    def __init__(self, fail=False):
        self.fail = fail
        self.trees = []

    def refresh(self, tree):
        self.trees.append(Path(tree))
        node_modules = Path(tree) / "node_modules"
        if self.fail:
            raise ToolError("Command failed with exit code 1: npm install --omit=dev", returncode=1)
        if node_modules.exists():
            shutil.rmtree(node_modules)
        marker = node_modules / "@ghostery" / "adblocker-electron" / "package.json"
        marker.parent.mkdir(parents=True)
        marker.write_text('{"name": "@ghostery/adblocker-electron"}')
        return True


class StubProcessController:
    def __init__(self, result=TerminationResult.NOT_RUNNING):
        self.result = result
        self.calls = []

    def terminate(self, image_name):
        self.calls.append(image_name)
        return self.result


class ScriptedPrompt:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.answer


def write_tree(root: Path, main_js: str = ORIGINAL_MAIN, with_package_json: bool = True) -> Path:
    (root / "build").mkdir(parents=True, exist_ok=True)
    if main_js is not None:
        (root / "build" / "main.js").write_text(main_js)
    (root / "build" / "app.js").write_text("module.exports = {};\n")
    if with_package_json:
        (root / "package.json").write_text('{"name": "deezer-desktop", "main": "build/main.js"}')
    stale = root / "node_modules" / "stale-native" / "index.js"
    stale.parent.mkdir(parents=True, exist_ok=True)
    stale.write_text("// built for another platform\n")
    return root


def write_archive(archive: Path, tree: Path) -> Path:
    with zipfile.ZipFile(archive, "w") as zf:
        for path in sorted(tree.rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(tree).as_posix())
    return archive


def make_archive(tmp_path: Path, name: str, main_js=ORIGINAL_MAIN, dest: Path = None, **kwargs) -> Path:
    tree = write_tree(tmp_path / f"src-{name}", main_js, **kwargs)
    return write_archive(dest or tmp_path / f"{name}.asar", tree)


def read_member(archive: Path, member: str) -> str:
    with zipfile.ZipFile(archive) as zf:
        return zf.read(member).decode("utf-8")


@pytest.fixture(autouse=True)
def dedeezer_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("DEDEEZER_HOME", str(home))
    return home


@pytest.fixture
def installation(tmp_path):
    resources = tmp_path / "resources"
    resources.mkdir()
    return InstallationPaths(
        platform="win32",
        resources_dir=resources,
        archive_path=resources / "app.asar",
        backup_path=resources / "app.bak.asar",
        executable="Deezer.exe",
    )


@pytest.fixture
def wrapper(tmp_path):
    path = tmp_path / "payload" / "main.js"
    path.parent.mkdir()
    path.write_text(PATCHED_MAIN)
    return path


@pytest.fixture
def session(tmp_path, installation):
    session_id = "p-20250101-120000-abcd"
    return PatchSession(
        session_id=session_id,
        paths=installation,
        workspace=ScratchWorkspace(tmp_path / "scratch" / f"deezer-patch-{session_id}"),
        package_manager="npm",
    )
