"""Tests for building launch plans and supervising the server process."""

import os
import signal
import sys
import threading
import time

import pytest
from pydantic import BaseModel

from mpak import Manifest, McpConfig, SpawnError, UnsupportedServerTypeError, build_launch_plan
from mpak.runner import LaunchPlan, ServerProcess, run_server


def _manifest(server_type, entry_point="server/main", command=None, args=None, env=None):
    mcp_config = {"args": args or []}
    if command is not None:
        mcp_config["command"] = command
    if env is not None:
        mcp_config["env"] = env
    return Manifest.model_validate(
        {
            "name": "@acme/tool",
            "version": "1.0.0",
            "server": {"type": server_type, "entry_point": entry_point, "mcp_config": mcp_config},
        }
    )


def _plan(manifest, cache_dir, values=None, environ=None):
    return build_launch_plan(
        manifest,
        cache_dir,
        values or {},
        environ=environ if environ is not None else {},
        find_python=lambda: "python3",
    )


# --- binary ---


def test_binary_uses_entry_point(tmp_path):
    binary = tmp_path / "bin" / "server"
    binary.parent.mkdir()
    binary.write_text("#!/bin/sh\n")
    binary.chmod(0o644)

    plan = _plan(_manifest("binary", "bin/server", args=["--port", "1"]), tmp_path)
    assert plan.command == str(binary)
    assert plan.args == ["--port", "1"]
    assert plan.cwd == tmp_path
    if os.name != "nt":
        assert binary.stat().st_mode & 0o111


def test_binary_missing_entry_point_is_not_fatal_at_plan_time(tmp_path):
    plan = _plan(_manifest("binary", "bin/missing"), tmp_path)
    assert plan.command == str(tmp_path / "bin" / "missing")
    assert plan.args == []


# --- node ---


def test_node_defaults(tmp_path):
    plan = _plan(_manifest("node", "dist/index.js"), tmp_path)
    assert plan.command == "node"
    assert plan.args == [str(tmp_path / "dist" / "index.js")]


def test_node_explicit_command_and_args(tmp_path):
    manifest = _manifest(
        "node", "dist/index.js", command="bun", args=["${__dirname}/dist/index.js"]
    )
    plan = _plan(manifest, tmp_path)
    assert plan.argv == ["bun", f"{tmp_path}/dist/index.js"]


# --- python ---


def test_python_probes_interpreter(tmp_path):
    plan = _plan(_manifest("python", "main.py", command="python"), tmp_path)
    assert plan.command == "python3"
    assert plan.args == [str(tmp_path / "main.py")]


def test_python_explicit_interpreter_not_probed(tmp_path):
    def fail():
        raise AssertionError("should not probe")

    manifest = _manifest("python", "main.py", command="/opt/py/bin/python3.12")
    plan = build_launch_plan(manifest, tmp_path, {}, environ={}, find_python=fail)
    assert plan.command == "/opt/py/bin/python3.12"


def test_pythonpath_prepends_deps(tmp_path):
    deps = str(tmp_path / "deps")
    plan = _plan(_manifest("python", "main.py"), tmp_path)
    assert plan.env["PYTHONPATH"] == deps

    plan = _plan(_manifest("python", "main.py"), tmp_path, environ={"PYTHONPATH": "/existing"})
    assert plan.env["PYTHONPATH"] == f"{deps}{os.pathsep}/existing"


# --- environment ---


def test_env_placeholders_substituted(tmp_path):
    manifest = _manifest(
        "node",
        "index.js",
        env={
            "API_KEY": "${user_config.api_key}",
            "DATA": "${__dirname}/data",
            "MISSING": "${user_config.x}",
        },
    )
    plan = _plan(manifest, tmp_path, values={"api_key": "secret"})
    assert plan.env["API_KEY"] == "secret"
    assert plan.env["DATA"] == f"{tmp_path}/data"
    assert plan.env["MISSING"] == "${user_config.x}"


def test_args_user_config_substituted(tmp_path):
    manifest = _manifest("node", "index.js", args=["--token=${user_config.token}"])
    plan = _plan(manifest, tmp_path, values={"token": "t0k"})
    assert plan.args == ["--token=t0k"]


def test_ambient_environment_wins(tmp_path):
    manifest = _manifest("node", "index.js", env={"API_KEY": "${user_config.api_key}"})
    environ = {"API_KEY": "from-shell", "HOME": "/home/me"}
    plan = _plan(manifest, tmp_path, values={"api_key": "resolved"}, environ=environ)
    assert plan.env["API_KEY"] == "from-shell"
    assert plan.env["HOME"] == "/home/me"


class RubyServer(BaseModel):
    type: str = "ruby"
    entry_point: str = "main.rb"
    mcp_config: McpConfig = McpConfig()


def test_unsupported_server_type(tmp_path):
    manifest = Manifest.model_construct(name="@acme/tool", version="1.0.0", server=RubyServer())
    with pytest.raises(UnsupportedServerTypeError):
        build_launch_plan(manifest, tmp_path, {}, environ={})


# --- process ---


def _python_plan(tmp_path, code):
    return LaunchPlan(
        command=sys.executable,
        args=["-c", code],
        env=dict(os.environ),
        cwd=tmp_path,
    )


def test_run_server_propagates_exit_code(tmp_path):
    assert run_server(_python_plan(tmp_path, "import sys; sys.exit(3)")) == 3
    assert run_server(_python_plan(tmp_path, "pass")) == 0


def test_server_runs_in_cache_dir_with_env(tmp_path):
    code = (
        "import os, sys; "
        "sys.exit(0 if os.getcwd() == os.environ['EXPECTED_CWD'] else 7)"
    )
    plan = _python_plan(tmp_path, code)
    plan.env["EXPECTED_CWD"] = os.path.realpath(tmp_path)
    plan.cwd = tmp_path.resolve()
    assert run_server(plan) == 0


def test_process_states(tmp_path):
    process = ServerProcess(_python_plan(tmp_path, "pass"))
    assert process.state == "not_started"
    process.start()
    assert process.state == "running"
    assert process.pid is not None
    assert process.wait() == 0
    assert process.state == "exited"
    assert process.exit_code == 0


def test_spawn_failure(tmp_path):
    plan = LaunchPlan(command=str(tmp_path / "does-not-exist"), args=[], env={}, cwd=tmp_path)
    process = ServerProcess(plan)
    with pytest.raises(SpawnError, match="Failed to start server"):
        process.start()
    assert process.state == "failed"
    assert isinstance(process.error, SpawnError)


_TRAP_SIGTERM = """
import pathlib, signal, sys, time
signal.signal(signal.SIGTERM, lambda signum, frame: sys.exit(42))
pathlib.Path(sys.argv[1]).write_text("ready")
time.sleep(30)
sys.exit(1)
"""


def _wait_for(path, timeout=10.0):
    deadline = time.monotonic() + timeout
    while not path.exists():
        if time.monotonic() > deadline:
            raise AssertionError(f"{path} never appeared")
        time.sleep(0.05)


@pytest.mark.skipif(os.name == "nt", reason="POSIX signals")
def test_sigterm_is_forwarded_and_handlers_restored(tmp_path):
    ready = tmp_path / "ready"
    plan = _python_plan(tmp_path, _TRAP_SIGTERM)
    plan.args.append(str(ready))
    before = {signum: signal.getsignal(signum) for signum in (signal.SIGINT, signal.SIGTERM)}

    process = ServerProcess(plan)
    process.start()
    _wait_for(ready)
    timer = threading.Timer(0.5, os.kill, (os.getpid(), signal.SIGTERM))
    timer.start()
    try:
        # mpak keeps waiting; the child decides its own exit code
        assert process.wait() == 42
    finally:
        timer.cancel()

    assert process.state == "exited"
    after = {signum: signal.getsignal(signum) for signum in (signal.SIGINT, signal.SIGTERM)}
    assert after == before


def test_unknown_previous_handler_restored_as_default(tmp_path, monkeypatch):
    calls = []

    def fake_signal(signum, handler):
        calls.append((signum, handler))
        return None

    monkeypatch.setattr(signal, "signal", fake_signal)
    process = ServerProcess(_python_plan(tmp_path, "pass"))
    process.start()
    assert process.wait() == 0

    restored = dict(calls[len(calls) // 2 :])
    assert restored == {signal.SIGINT: signal.SIG_DFL, signal.SIGTERM: signal.SIG_DFL}
