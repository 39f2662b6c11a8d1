"""Build the server command line and supervise the server process."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from ..errors import SpawnError, UnsupportedServerTypeError
from ..models.manifest import BinaryServer, NodeServer, PythonServer
from ._placeholders import resolve_placeholders

if TYPE_CHECKING:
    from ..models.manifest import Manifest

ProcessState = Literal["not_started", "running", "exited", "failed"]

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Python dependencies vendored into the bundle
PYTHON_DEPS_DIR = "deps"

logger = logging.getLogger(__name__)


@dataclass
class LaunchPlan:
    """Everything needed to spawn a bundle's server."""

    command: str
    args: list[str]
    env: dict[str, str]
    cwd: Path

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


def find_python_command() -> str:
    """Prefer python3, fall back to python if it cannot be run."""
    try:
        result = subprocess.run(["python3", "--version"], capture_output=True, timeout=10)
    except (OSError, subprocess.SubprocessError):
        return "python"
    return "python3" if result.returncode == 0 else "python"


def build_launch_plan(
    manifest: Manifest,
    cache_dir: Path,
    user_values: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
    find_python: Callable[[], str] = find_python_command,
) -> LaunchPlan:
    """Turn a manifest's server block into a concrete command line.

    The environment is the substituted manifest env with the ambient
    environment laid over it, so anything set by the caller wins.
    """
    environ = os.environ if environ is None else environ
    server = manifest.server
    mcp_config = server.mcp_config
    args = [resolve_placeholders(a, cache_dir, user_values) for a in mcp_config.args]
    bundle_env = {
        k: resolve_placeholders(v, cache_dir, user_values)
        for k, v in (mcp_config.env or {}).items()
    }
    env = {**bundle_env, **environ}
    entry_point = cache_dir / server.entry_point

    if isinstance(server, BinaryServer):
        command = str(entry_point)
        _make_executable(entry_point)
    elif isinstance(server, NodeServer):
        command = mcp_config.command or "node"
        args = args or [str(entry_point)]
    elif isinstance(server, PythonServer):
        if not mcp_config.command or mcp_config.command == "python":
            command = find_python()
        else:
            command = mcp_config.command
        args = args or [str(entry_point)]
        deps_dir = str(cache_dir / PYTHON_DEPS_DIR)
        existing = environ.get("PYTHONPATH")
        env["PYTHONPATH"] = f"{deps_dir}{os.pathsep}{existing}" if existing else deps_dir
    else:
        raise UnsupportedServerTypeError(getattr(server, "type", type(server).__name__))

    return LaunchPlan(command=command, args=args, env=env, cwd=cache_dir)


def _make_executable(path: Path) -> None:
    try:
        path.chmod(0o755)
    except OSError:
        # Some filesystems (and Windows) have no executable bit
        pass


@dataclass
class ServerProcess:
    """A spawned server with inherited stdio.

    State moves not_started -> running -> exited | failed. While running,
    SIGINT and SIGTERM received by mpak are forwarded to the child and mpak
    keeps waiting for the child's own exit.
    """

    plan: LaunchPlan
    state: ProcessState = "not_started"
    exit_code: int | None = None
    error: SpawnError | None = None
    _proc: subprocess.Popen | None = field(default=None, repr=False)

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    def start(self) -> None:
        if self.state != "not_started":
            raise RuntimeError(f"Server process already {self.state}")
        logger.info("Starting %s in %s", " ".join(self.plan.argv), self.plan.cwd)
        try:
            self._proc = subprocess.Popen(
                self.plan.argv,
                env=self.plan.env,
                cwd=self.plan.cwd,
            )
        except OSError as e:
            self.state = "failed"
            self.error = SpawnError(self.plan.command, str(e))
            raise self.error from e
        self.state = "running"

    def wait(self) -> int:
        """Block until the child exits and return the code mpak should exit with.

        A child killed by a signal has no exit code of its own; that reports 0.
        """
        if self._proc is None or self.state != "running":
            raise RuntimeError("Server process is not running")

        previous = self._install_forwarding()
        try:
            returncode = self._proc.wait()
        finally:
            for signum, handler in previous.items():
                # None means the handler was not installed from Python
                signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

        self.exit_code = returncode if returncode >= 0 else 0
        self.state = "exited"
        logger.info("Server exited with code %s", returncode)
        return self.exit_code

    def _install_forwarding(self) -> dict[int, object]:
        if threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for signum in FORWARDED_SIGNALS:
            previous[signum] = signal.signal(signum, self._forward)
        return previous

    def _forward(self, signum: int, frame: object) -> None:
        if self._proc is not None and self._proc.poll() is None:
            logger.debug("Forwarding signal %s to pid %s", signum, self._proc.pid)
            self._proc.send_signal(signum)


def run_server(plan: LaunchPlan) -> int:
    """Spawn the server described by plan and wait for it. Returns its exit code."""
    process = ServerProcess(plan)
    process.start()
    return process.wait()
