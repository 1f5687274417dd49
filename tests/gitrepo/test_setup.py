"""Tests for the setup tool."""

import logging
import os
import stat
from pathlib import Path

import pytest

from gitrepo.primitives.errors import CommandFailedError, GitRepoError, MissingToolError
from gitrepo.tools.setup import SetupTool, isolated_git_env
from gitrepo.utils.path_utils import ProjectPaths

URL = "https://github.com/example/demo.git"


@pytest.fixture
def paths(settings):
    return ProjectPaths.for_project(settings, "demo")


@pytest.fixture
def repo_files():
    """Files the fake clone writes into the new project directory."""
    return {"main.py": "print('demo')\n", "requirements.txt": "requests\n"}


@pytest.fixture
def runner(fake_runner, settings, repo_files, make_venv):
    """Runner whose clone and venv commands leave real files behind."""

    def clone(argv, cwd):
        dest = argv[3]
        os.makedirs(os.path.join(dest, ".git"))
        for name, content in repo_files.items():
            with open(os.path.join(dest, name), "w") as f:
                f.write(content)

    def venv(argv, cwd):
        make_venv(Path(argv[3]))

    fake_runner.on("git", "clone", effect=clone)
    fake_runner.on(settings.python, "-m", "venv", effect=venv)
    return fake_runner


@pytest.fixture
def tool(settings, runner, tools_on_path):
    return SetupTool(settings, runner=runner)


class TestIsolatedGitEnv:
    """Test the clone environment."""

    def test_strips_credentials(self):
        env = isolated_git_env(
            {
                "PATH": "/usr/bin",
                "LANG": "C.UTF-8",
                "HOME": "/home/alice",
                "GITHUB_TOKEN": "secret",
                "SSH_AUTH_SOCK": "/tmp/agent",
                "GIT_SSH_COMMAND": "ssh -i key",
            }
        )
        assert env == {
            "PATH": "/usr/bin",
            "LANG": "C.UTF-8",
            "HOME": "/tmp",
            "GIT_ASKPASS": "",
            "GIT_TERMINAL_PROMPT": "0",
        }

    def test_default_path(self):
        env = isolated_git_env({})
        assert env["PATH"] == os.defpath


class TestDefaultSetup:
    """Fresh setup of a project with requirements.txt and no run.sh."""

    @pytest.mark.asyncio
    async def test_full_flow(self, tool, runner, settings, paths):
        result = await tool.handle("demo", URL)

        assert result == {
            "project": "demo",
            "cloned": True,
            "venv_created": True,
            "dependencies": "requirements",
            "run_target": "wrapper",
        }
        assert settings.base_dir.is_dir()
        assert paths.bin_entry.is_file()
        assert not paths.bin_entry.is_symlink()
        assert stat.S_IMODE(paths.bin_entry.stat().st_mode) == 0o755
        assert f"PROJECT_ROOT={paths.project_dir}" in paths.bin_entry.read_text()

        assert [argv[:2] for argv in runner.commands] == [
            ["git", "clone"],
            [settings.python, "-m"],
            [str(paths.venv_dir / "bin" / "python"), "-m"],
        ]

    @pytest.mark.asyncio
    async def test_clone_is_isolated(self, tool, runner, paths, monkeypatch):
        """Credentials never reach git; prompting is disabled."""
        monkeypatch.setenv("GITHUB_TOKEN", "secret")

        await tool.handle("demo", URL)

        call = runner.find("git", "clone")
        assert call.argv == ["git", "clone", URL, str(paths.project_dir)]
        assert call.inherit_env is False
        assert "GITHUB_TOKEN" not in call.env
        assert call.env["GIT_TERMINAL_PROMPT"] == "0"
        assert call.env["GIT_ASKPASS"] == ""

    @pytest.mark.asyncio
    async def test_pip_runs_in_activated_venv(self, tool, runner, paths):
        await tool.handle("demo", URL)

        call = runner.find(str(paths.venv_dir / "bin" / "python"))
        assert call.argv[1:] == [
            "-m",
            "pip",
            "install",
            "-r",
            str(paths.requirements_file),
            "--no-input",
            "--disable-pip-version-check",
        ]
        assert call.cwd == str(paths.project_dir)
        assert call.env["VIRTUAL_ENV"] == str(paths.venv_dir)
        assert call.env["PATH"].startswith(str(paths.venv_dir / "bin"))
        assert os.environ.get("VIRTUAL_ENV") != str(paths.venv_dir)

    @pytest.mark.asyncio
    async def test_venv_binaries_group_executable(self, tool, paths):
        await tool.handle("demo", URL)
        assert (paths.venv_dir / "bin" / "python").stat().st_mode & stat.S_IXGRP

    @pytest.mark.asyncio
    async def test_takes_project_lock(self, tool, settings):
        await tool.handle("demo", URL)
        assert (settings.base_dir / ".locks" / "demo.lock").is_file()


class TestRunScriptProject:
    """Setup of a project that ships its own run.sh."""

    @pytest.fixture
    def repo_files(self):
        return {"run.sh": "#!/bin/sh\necho hi\n", "requirements.txt": "requests\n"}

    @pytest.mark.asyncio
    async def test_symlink(self, tool, paths):
        result = await tool.handle("demo", URL)

        assert result["run_target"] == "symlink"
        assert paths.bin_entry.is_symlink()
        assert os.readlink(paths.bin_entry) == str(paths.run_script)
        assert paths.run_script.stat().st_mode & stat.S_IXUSR

    @pytest.mark.asyncio
    async def test_force_create(self, tool, paths):
        result = await tool.handle("demo", URL, force_create=True)

        assert result["run_target"] == "wrapper"
        assert paths.bin_entry.is_file()
        assert not paths.bin_entry.is_symlink()


class TestRerun:
    """Setup against a project that already exists."""

    @pytest.mark.asyncio
    async def test_second_run_skips_clone_and_venv(self, tool, runner, settings, paths, caplog):
        await tool.handle("demo", URL)
        wrapper = paths.bin_entry.read_text()
        tree = {
            p: p.stat().st_mtime_ns for p in paths.project_dir.rglob("*") if p.is_file()
        }
        runner.calls.clear()

        with caplog.at_level(logging.WARNING, logger="gitrepo"):
            result = await tool.handle("demo", "https://ignored.example/other.git")

        assert result["cloned"] is False
        assert result["venv_created"] is False
        assert runner.find("git", "clone") is None
        assert runner.find(settings.python, "-m", "venv") is None
        assert paths.bin_entry.read_text() == wrapper
        assert {
            p: p.stat().st_mtime_ns for p in paths.project_dir.rglob("*") if p.is_file()
        } == tree
        assert os.listdir(settings.bin_dir) == ["demo"]
        assert "already exists" in caplog.text

    @pytest.mark.asyncio
    async def test_switching_run_target_form(self, tool, paths):
        """The bin entry follows the latest mode and run.sh presence."""
        await tool.handle("demo", URL)
        assert not paths.bin_entry.is_symlink()

        paths.run_script.write_text("#!/bin/sh\n")
        await tool.handle("demo", URL)
        assert paths.bin_entry.is_symlink()

        await tool.handle("demo", URL, force_create=True)
        assert not paths.bin_entry.is_symlink()


class TestDependencies:
    """Build script and requirements handling."""

    @pytest.fixture
    def repo_files(self):
        return {"build.sh": "#!/bin/sh\n", "requirements.txt": "requests\n"}

    @pytest.mark.asyncio
    async def test_build_script_wins(self, tool, runner, paths):
        """build.sh runs from the project directory and pip is skipped."""
        result = await tool.handle("demo", URL)

        assert result["dependencies"] == "build"
        call = runner.find(str(paths.build_script))
        assert call.argv == [str(paths.build_script)]
        assert call.cwd == str(paths.project_dir)
        assert paths.build_script.stat().st_mode & stat.S_IXUSR
        assert runner.find(str(paths.venv_dir / "bin" / "python")) is None

    @pytest.mark.asyncio
    async def test_build_failure_is_fatal(self, tool, runner, paths):
        runner.on(str(paths.build_script), return_code=2)

        with pytest.raises(CommandFailedError) as exc_info:
            await tool.handle("demo", URL)

        assert "exit status 2" in exc_info.value.message
        assert not paths.bin_entry.exists()


class TestNoDependencies:
    @pytest.fixture
    def repo_files(self):
        return {"main.py": "print('demo')\n"}

    @pytest.mark.asyncio
    async def test_skips_install_with_warning(self, tool, runner, paths, caplog):
        with caplog.at_level(logging.WARNING, logger="gitrepo"):
            result = await tool.handle("demo", URL)

        assert result["dependencies"] == "none"
        assert result["run_target"] == "wrapper"
        assert "Skipping dependency/build step" in caplog.text
        assert runner.find(str(paths.venv_dir / "bin" / "python")) is None


class TestFailures:
    """Fatal setup failures."""

    @pytest.mark.asyncio
    async def test_clone_failure(self, tool, runner, paths):
        """Failed clone stops setup before anything is installed."""
        runner.on("git", "clone", return_code=128)

        with pytest.raises(CommandFailedError, match="Failed to clone repository"):
            await tool.handle("demo", URL)

        assert runner.commands == [["git", "clone", URL, str(paths.project_dir)]]
        assert not paths.bin_entry.exists()

    @pytest.mark.asyncio
    async def test_venv_failure(self, tool, runner, settings, paths):
        runner.on(settings.python, "-m", "venv", return_code=1)

        with pytest.raises(CommandFailedError, match="python3-venv"):
            await tool.handle("demo", URL)

        assert not paths.bin_entry.exists()

    @pytest.mark.asyncio
    async def test_pip_failure(self, tool, runner, paths):
        runner.on(str(paths.venv_dir / "bin" / "python"), return_code=1)

        with pytest.raises(CommandFailedError, match="Failed to install dependencies"):
            await tool.handle("demo", URL)

        assert not paths.bin_entry.exists()

    @pytest.mark.asyncio
    async def test_missing_activate_script(self, tool, runner, settings, paths):
        """A venv without bin/activate cannot install requirements."""
        runner.on(
            settings.python,
            "-m",
            "venv",
            effect=lambda argv, cwd: os.makedirs(os.path.join(argv[3], "bin")),
        )

        with pytest.raises(GitRepoError, match="activation script not found"):
            await tool.handle("demo", URL)

    @pytest.mark.asyncio
    async def test_missing_tools(self, settings, runner, monkeypatch):
        """Preflight runs before anything touches the filesystem."""
        monkeypatch.setattr("gitrepo.tools.preflight.shutil.which", lambda name: None)

        with pytest.raises(MissingToolError):
            await SetupTool(settings, runner=runner).handle("demo", URL)

        assert runner.calls == []
        assert not settings.base_dir.exists()

    @pytest.mark.asyncio
    async def test_base_dir_not_creatable(self, settings, runner, tools_on_path):
        settings.base_dir.parent.mkdir(parents=True, exist_ok=True)
        settings.base_dir.write_text("")

        with pytest.raises(GitRepoError, match="Failed to create base directory"):
            await SetupTool(settings, runner=runner).handle("demo", URL)
