"""
Tests for caches, command runners, artifact upload, and workflow commands.
"""

import io
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from cuda_setup.adapters.artifacts import ArtifactUploader, uploader_from_env
from cuda_setup.adapters.cache.remote_cache import (
    REMOTE_CACHE_ENV,
    DirectoryRemoteCache,
    remote_cache_from_env,
)
from cuda_setup.adapters.cache.tool_cache import ToolCache, get_tool_cache_dir
from cuda_setup.adapters.mock import MockCommandRunner
from cuda_setup.adapters.shell.command import CommandRunner
from cuda_setup.adapters.workflow import WorkflowCommands, failure_message
from cuda_setup.core.errors import CacheAlreadyExists
from cuda_setup.core.models.toolkit import CommandPlan

# ── Tool Cache ───────────────────────────────────────────────────────


class TestToolCache:
    def _source(self, tmp_path: Path, name="src.run", payload=b"installer") -> Path:
        src = tmp_path / name
        src.write_bytes(payload)
        return src

    def test_miss(self, tool_cache):
        assert tool_cache.find("cuda_installer-linux-6.5", "11.2.2") is None

    def test_cache_then_find(self, tool_cache, tmp_path):
        entry = tool_cache.cache_file(
            self._source(tmp_path), "cuda.run", "cuda_installer-linux-6.5", "11.2.2"
        )
        assert entry == tool_cache.root / "cuda_installer-linux-6.5" / "11.2.2" / "x64"
        assert (entry / "cuda.run").read_bytes() == b"installer"
        assert (entry.parent / "x64.complete").is_file()
        assert tool_cache.find("cuda_installer-linux-6.5", "11.2.2") == entry

    def test_version_is_exact(self, tool_cache, tmp_path):
        tool_cache.cache_file(self._source(tmp_path), "cuda.run", "tool", "11.2.2")
        assert tool_cache.find("tool", "11.2.0") is None

    def test_incomplete_entry_is_a_miss(self, tool_cache, tmp_path):
        entry = tool_cache.cache_file(self._source(tmp_path), "cuda.run", "tool", "1.0.0")
        (entry.parent / "x64.complete").unlink()
        assert tool_cache.find("tool", "1.0.0") is None

    def test_consumed_entry_is_a_miss(self, tool_cache, tmp_path):
        entry = tool_cache.cache_file(self._source(tmp_path), "cuda.run", "tool", "1.0.0")
        (entry / "cuda.run").unlink()
        assert tool_cache.find("tool", "1.0.0") is None

    def test_recache_replaces_entry(self, tool_cache, tmp_path):
        tool_cache.cache_file(self._source(tmp_path, "a"), "old.run", "tool", "1.0.0")
        entry = tool_cache.cache_file(self._source(tmp_path, "b"), "new.run", "tool", "1.0.0")
        assert [p.name for p in entry.iterdir()] == ["new.run"]

    def test_status(self, tool_cache, tmp_path):
        tool_cache.cache_file(self._source(tmp_path), "cuda.run", "tool", "1.0.0")
        status = tool_cache.status()
        assert status["cache_dir"] == str(tool_cache.root)
        assert status["tools"]["tool"]["versions"] == ["1.0.0"]
        assert "total_size_mb" in status

    def test_status_empty(self, tmp_path):
        status = ToolCache(root=tmp_path / "none", arch="x64").status()
        assert status["tools"] == {}
        assert status["total_size_mb"] == 0

    def test_clear_one_tool(self, tool_cache, tmp_path):
        tool_cache.cache_file(self._source(tmp_path), "a.run", "a", "1.0.0")
        tool_cache.cache_file(self._source(tmp_path), "b.run", "b", "1.0.0")
        assert tool_cache.clear("a") == "a"
        assert tool_cache.find("a", "1.0.0") is None
        assert tool_cache.find("b", "1.0.0") is not None

    def test_clear_all(self, tool_cache, tmp_path):
        tool_cache.cache_file(self._source(tmp_path), "a.run", "a", "1.0.0")
        assert tool_cache.clear() == "all"
        assert tool_cache.root.is_dir()
        assert list(tool_cache.root.iterdir()) == []

    def test_root_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RUNNER_TOOL_CACHE", str(tmp_path / "hosted"))
        assert get_tool_cache_dir() == tmp_path / "hosted"
        assert ToolCache(arch="x64").root == tmp_path / "hosted"


# ── Remote Cache ─────────────────────────────────────────────────────


class TestDirectoryRemoteCache:
    def test_miss(self, remote_cache, tmp_path):
        assert remote_cache.restore(tmp_path / "out", "key") is None
        assert not (tmp_path / "out").exists()

    def test_save_then_restore(self, remote_cache, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "cuda.run").write_bytes(b"payload")
        remote_cache.save(src, "cuda-key")

        out = tmp_path / "out"
        assert remote_cache.restore(out, "cuda-key") == "cuda-key"
        assert (out / "cuda.run").read_bytes() == b"payload"

    def test_entries_are_immutable(self, remote_cache, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "f").write_bytes(b"x")
        remote_cache.save(src, "k")
        with pytest.raises(CacheAlreadyExists) as exc:
            remote_cache.save(src, "k")
        assert exc.value.key == "k"

    def test_no_temp_files_left(self, remote_cache, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "f").write_bytes(b"x")
        remote_cache.save(src, "k")
        assert [p.name for p in remote_cache.root.iterdir()] == ["k.tar"]

    def test_from_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv(REMOTE_CACHE_ENV, raising=False)
        assert remote_cache_from_env() is None
        monkeypatch.setenv(REMOTE_CACHE_ENV, str(tmp_path))
        assert remote_cache_from_env().root == tmp_path


# ── Command Runners ──────────────────────────────────────────────────


class TestMockCommandRunner:
    def test_default_success(self):
        mock = MockCommandRunner()
        assert mock.run(CommandPlan(command="tar")) == 0
        assert mock.call_count == 1

    def test_set_failure(self):
        mock = MockCommandRunner()
        mock.set_failure("tar", returncode=3)
        with pytest.raises(subprocess.CalledProcessError) as exc:
            mock.run(CommandPlan(command="tar", args=["-xf", "a"], sudo=True))
        assert exc.value.returncode == 3
        assert exc.value.cmd == ["sudo", "tar", "-xf", "a"]

    def test_call_log(self):
        mock = MockCommandRunner()
        for i in range(3):
            mock.run(CommandPlan(command=f"cmd-{i}"))
        assert mock.call_log[0].command == "cmd-0"

    def test_reset(self):
        mock = MockCommandRunner()
        mock.set_failure("x")
        with pytest.raises(subprocess.CalledProcessError):
            mock.run(CommandPlan(command="x"))
        mock.reset()
        assert mock.call_count == 0
        assert mock.run(CommandPlan(command="x")) == 0


class TestCommandRunner:
    def _completed(self, returncode=0, stdout="", stderr=""):
        result = MagicMock()
        result.returncode = returncode
        result.stdout = stdout
        result.stderr = stderr
        return result

    @patch("cuda_setup.adapters.shell.command.is_root", return_value=False)
    @patch("cuda_setup.adapters.shell.command.subprocess.run")
    def test_success(self, mock_run, _root):
        mock_run.return_value = self._completed(stdout="line 1\nline 2\n")
        plan = CommandPlan(command="tar", args=["-xf", "a.tar"], sudo=True)
        assert CommandRunner().run(plan) == 0
        argv = mock_run.call_args[0][0]
        assert argv == ["sudo", "tar", "-xf", "a.tar"]

    @patch("cuda_setup.adapters.shell.command.is_root", return_value=True)
    @patch("cuda_setup.adapters.shell.command.subprocess.run")
    def test_sudo_dropped_for_root(self, mock_run, _root):
        mock_run.return_value = self._completed()
        CommandRunner().run(CommandPlan(command="tar", sudo=True))
        assert mock_run.call_args[0][0] == ["tar"]

    @patch("cuda_setup.adapters.shell.command.is_root", return_value=False)
    @patch("cuda_setup.adapters.shell.command.subprocess.run")
    def test_nonzero_exit_raises(self, mock_run, _root):
        mock_run.return_value = self._completed(returncode=1, stderr="boom")
        with pytest.raises(subprocess.CalledProcessError) as exc:
            CommandRunner().run(CommandPlan(command="installer"))
        assert exc.value.stderr == "boom"

    @patch("cuda_setup.adapters.shell.command.subprocess.run",
           side_effect=FileNotFoundError("installer"))
    def test_missing_executable(self, _run):
        with pytest.raises(OSError):
            CommandRunner().run(CommandPlan(command="installer"))


# ── Artifact Upload ──────────────────────────────────────────────────


class TestArtifactUploader:
    def test_upload(self, uploader, tmp_path):
        logs = tmp_path / "var" / "log"
        logs.mkdir(parents=True)
        (logs / "cuda-installer.log").write_text("done")

        result = uploader.upload(
            "install-log", [str(logs / "cuda-installer.log")], str(logs)
        )
        assert result.ok
        assert (uploader.root / "install-log" / "cuda-installer.log").read_text() == "done"

    def test_missing_file_recorded(self, uploader, tmp_path):
        missing = str(tmp_path / "nope.log")
        result = uploader.upload("install-log", [missing], str(tmp_path))
        assert not result.ok
        assert result.failed == [missing]

    def test_missing_file_raises_without_continue(self, uploader, tmp_path):
        with pytest.raises(OSError):
            uploader.upload(
                "install-log", [str(tmp_path / "nope.log")], str(tmp_path),
                continue_on_error=False,
            )

    def test_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CUDA_SETUP_ARTIFACT_DIR", str(tmp_path / "a"))
        assert uploader_from_env().root == tmp_path / "a"
        monkeypatch.delenv("CUDA_SETUP_ARTIFACT_DIR")
        monkeypatch.setenv("RUNNER_TEMP", str(tmp_path))
        assert uploader_from_env().root == tmp_path / "artifacts"


# ── Workflow Commands ────────────────────────────────────────────────


class TestWorkflowCommands:
    def test_set_output(self, workflow):
        workflow.set_output("cuda", "11.2.2")
        with open(workflow.environ["GITHUB_OUTPUT"], encoding="utf-8") as f:
            lines = f.read().splitlines()
        assert lines[0].startswith("cuda<<ghadelimiter_")
        assert lines[1] == "11.2.2"
        assert lines[2] == lines[0].split("<<", 1)[1]

    def test_export_variable_updates_environ(self, workflow):
        workflow.export_variable("CUDA_PATH", "/usr/local/cuda-11.2")
        assert workflow.environ["CUDA_PATH"] == "/usr/local/cuda-11.2"

    def test_add_path_prepends(self, workflow):
        workflow.add_path("/usr/local/cuda-11.2/bin")
        assert workflow.environ["PATH"].startswith("/usr/local/cuda-11.2/bin")
        assert workflow.environ["PATH"].endswith("/usr/bin")

    def test_without_runner_files(self):
        environ: dict[str, str] = {}
        commands = WorkflowCommands(environ=environ)
        commands.set_output("cuda", "11.2.2")
        commands.export_variable("CUDA_PATH", "/x")
        commands.add_path("/x/bin")
        assert environ == {"CUDA_PATH": "/x", "PATH": "/x/bin"}

    def test_set_failed(self):
        stream = io.StringIO()
        WorkflowCommands(environ={}, stream=stream).set_failed("bad\nthing 100%")
        assert stream.getvalue() == "::error::bad%0Athing 100%25\n"

    def test_failure_message(self):
        assert failure_message(RuntimeError("boom")) == "boom"
        assert failure_message(RuntimeError()) == "Unknown error"
