"""Shared fixtures: isolated settings and a scripted process runner."""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from gitrepo.primitives.subprocess import Severity, ToolResult
from gitrepo.runtime.settings import Settings


@dataclass
class Call:
    argv: List[str]
    cwd: Optional[str]
    env: Optional[Dict[str, str]]
    inherit_env: bool
    capture: bool
    on_failure: Severity


class FakeRunner:
    """Stands in for ProcessRunner; no process is ever spawned.

    Rules match on an argv prefix; the most recently added matching rule
    wins. Unmatched commands succeed with empty output.
    """

    def __init__(self):
        self.calls: List[Call] = []
        self._rules = []

    def on(
        self,
        *prefix: str,
        return_code: int = 0,
        stdout: str = "",
        effect: Optional[Callable[[List[str], Optional[str]], None]] = None,
    ) -> "FakeRunner":
        self._rules.append((list(prefix), return_code, stdout, effect))
        return self

    async def execute(
        self,
        argv,
        cwd=None,
        env=None,
        inherit_env=True,
        capture=True,
        timeout=None,
        on_failure=Severity.FATAL,
    ) -> ToolResult:
        args = [str(a) for a in argv]
        self.calls.append(
            Call(
                args,
                str(cwd) if cwd else None,
                dict(env) if env is not None else None,
                inherit_env,
                capture,
                on_failure,
            )
        )
        for prefix, return_code, stdout, effect in reversed(self._rules):
            if args[: len(prefix)] == prefix:
                if effect is not None:
                    effect(args, cwd)
                return ToolResult(
                    success=return_code == 0,
                    stdout=stdout,
                    stderr="",
                    return_code=return_code,
                    duration_ms=0.0,
                    severity=Severity.OK if return_code == 0 else on_failure,
                )
        return ToolResult(True, "", "", 0, 0.0)

    @property
    def commands(self) -> List[List[str]]:
        return [call.argv for call in self.calls]

    def find(self, *prefix: str) -> Optional[Call]:
        for call in self.calls:
            if call.argv[: len(prefix)] == list(prefix):
                return call
        return None


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch):
    """Keep every test away from /usr/local and the user's config and logs."""
    monkeypatch.setenv("TOOLS_BASE_DIR", str(tmp_path / "tools"))
    monkeypatch.setenv("TOOLS_BIN_DIR", str(tmp_path / "bin"))
    monkeypatch.setenv("GIT_REPO_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("GIT_REPO_CONFIG", "")
    monkeypatch.delenv("GIT_REPO_PYTHON", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        base_dir=tmp_path / "tools",
        bin_dir=tmp_path / "bin",
        python="python3",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def tools_on_path(monkeypatch):
    """Pretend git and python3 are installed."""
    monkeypatch.setattr(
        "gitrepo.tools.preflight.shutil.which", lambda name: f"/usr/bin/{name}"
    )


@pytest.fixture
def make_venv():
    """Create the files `python -m venv` would leave behind that setup reads."""

    def make(venv_dir: Path) -> None:
        bin_dir = venv_dir / "bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "activate").write_text("# activate\n")
        (bin_dir / "python").write_text("#!/bin/sh\n")
        (bin_dir / "python").chmod(0o700)

    return make
