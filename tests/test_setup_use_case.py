"""
Tests for the setup use case — end to end with mocked runner and downloader.
"""

import io
import subprocess

import pytest

from cuda_setup.adapters.mock import MockCommandRunner
from cuda_setup.adapters.workflow import WorkflowCommands
from cuda_setup.core.config.inputs import SetupInputs, load_inputs
from cuda_setup.core.models.toolkit import PlatformProfile
from cuda_setup.core.use_cases.setup import SetupResult, SetupServices, run_setup

RELEASE = "6.5.0-1025-azure"


@pytest.fixture
def make_services(tmp_path, runner, tool_cache, downloader, uploader, workflow, catalog_loader):
    def _make(profile=PlatformProfile.LINUX, remote_cache=None):
        return SetupServices(
            profile=profile,
            release=RELEASE,
            runner=runner,
            tool_cache=tool_cache,
            downloader=downloader,
            uploader=uploader,
            workflow=workflow,
            work_dir=tmp_path / "work",
            remote_cache=remote_cache,
            catalog_loader=catalog_loader,
        )
    return _make


def _outputs(workflow: WorkflowCommands) -> str:
    with open(workflow.environ["GITHUB_OUTPUT"], encoding="utf-8") as f:
        return f.read()


class TestRunfilePath:
    def test_linux_cold_install(self, make_services, runner, downloader, workflow):
        inputs = load_inputs({"INPUT_CUDA": "11.2.2"})
        result = run_setup(inputs, make_services())

        assert result.ok, result.error
        assert result.install_path == "runfile"
        assert result.steps == ["resolve", "acquire", "install", "outputs"]
        assert len(downloader.calls) == 1
        assert downloader.calls[0][0].endswith("cuda_11.2.2_460.32.03_linux.run")

        install = runner.call_log[0]
        assert install.argv()[0] == "sudo"
        assert install.args == ["--silent", "--toolkit", "--samples"]
        assert runner.call_count == 1

        assert result.cuda_path == "/usr/local/cuda-11.2"
        outputs = _outputs(workflow)
        assert "\n11.2.2\n" in outputs
        assert "\n/usr/local/cuda-11.2\n" in outputs

    def test_v_prefixed_version(self, make_services, downloader, workflow):
        result = run_setup(load_inputs({"INPUT_CUDA": "v11.2.2"}), make_services())

        assert result.ok, result.error
        assert downloader.calls[0][0].endswith("cuda_11.2.2_460.32.03_linux.run")
        assert result.cuda_path == "/usr/local/cuda-11.2"
        assert "\nv11.2.2\n" in _outputs(workflow)

    def test_request_built_once_from_inputs(self, make_services):
        calls = []

        class CountingInputs(SetupInputs):
            def toolkit_request(self):
                calls.append(self)
                return super().toolkit_request()

        inputs = CountingInputs(**load_inputs({"INPUT_CUDA": "11.2.2"}).model_dump())
        result = run_setup(inputs, make_services())

        assert result.ok, result.error
        assert calls == [inputs]

    def test_installer_removed_after_install(self, make_services, tool_cache):
        run_setup(load_inputs({"INPUT_CUDA": "11.2.2"}), make_services())
        tid = f"cuda_installer-linux-{RELEASE}"
        # Entry exists but its only file was consumed by the installer step
        assert tool_cache.find(tid, "11.2.2") is None

    def test_windows_network_with_cudnn(self, make_services, runner, downloader, workflow):
        inputs = load_inputs({
            "INPUT_CUDA": "12.1.0",
            "INPUT_CUDNN": "8.9.7",
            "INPUT_CUDNN_URL": "https://example.com/cudnn-windows-x86_64-8.9.7.29_cuda12-archive.zip",
            "INPUT_METHOD": "network",
            "INPUT_SUB-PACKAGES": '["nvcc", "cudart"]',
        })
        result = run_setup(inputs, make_services(profile=PlatformProfile.WINDOWS))

        assert result.ok, result.error
        assert result.cudnn_installed is True
        assert result.steps == ["resolve", "acquire", "install", "outputs", "cudnn"]
        assert "network_installers" in downloader.calls[0][0]
        assert downloader.calls[1][0].endswith("archive.zip")

        install, extract, *moves = runner.call_log
        assert install.args == ["-s", "nvcc_12.1", "cudart_12.1"]
        assert extract.args[1] == "Expand-Archive"
        assert len(moves) == 3
        root = "C:\\Program Files\\NVIDIA GPU Computing Toolkit\\CUDA\\v12.1"
        assert f"{root}\\cudnn-windows-x86_64-8.9.7.29_cuda12-archive\\bin" in moves[0].args[3]
        assert workflow.environ["CUDA_PATH_V12_1"] == root

    def test_companion_merged_after_install(self, make_services, runner):
        inputs = load_inputs({
            "INPUT_CUDA": "11.2.2",
            "INPUT_CUDNN": "8.7.0",
            "INPUT_CUDNN_URL": "https://example.com",
            "INPUT_METHOD": "network",
        })
        result = run_setup(inputs, make_services(profile=PlatformProfile.WINDOWS))

        assert result.ok, result.error
        labels = [p.label for p in runner.call_log]
        assert labels[0] == "CUDA installation"
        assert labels[1:] == ["cuDNN extraction"] + ["cuDNN merge"] * 3

    def test_archive_dir_override(self, make_services, runner):
        inputs = load_inputs({
            "INPUT_CUDA": "11.2.2",
            "INPUT_CUDNN": "8.7.0",
            "INPUT_CUDNN_URL": "https://example.com/download?id=42",
            "INPUT_CUDNN_ARCHIVE_DIR": "cudnn-linux-x86_64-8.7.0.84_cuda11-archive",
        })
        result = run_setup(inputs, make_services())

        assert result.ok, result.error
        merge = runner.call_log[-1]
        assert "/usr/local/cuda-11.2/cudnn-linux-x86_64-8.7.0.84_cuda11-archive/lib/" in (
            merge.args[1]
        )

    def test_remote_cache_written_through(self, make_services, remote_cache):
        inputs = load_inputs({"INPUT_CUDA": "11.2.2"})
        result = run_setup(inputs, make_services(remote_cache=remote_cache))
        assert result.ok, result.error
        assert (remote_cache.root / f"cuda_installer-linux-{RELEASE}-11.2.2.tar").is_file()

    def test_cudnn_not_merged_without_url(self, make_services, runner):
        inputs = load_inputs({"INPUT_CUDA": "11.2.2", "INPUT_CUDNN": "8.7.0"})
        result = run_setup(inputs, make_services())
        assert result.ok
        assert result.cudnn_installed is False
        assert runner.call_count == 1


class TestAptPath:
    def test_linux_network_uses_apt(self, make_services, runner, downloader, monkeypatch):
        monkeypatch.setattr(
            "cuda_setup.core.services.provision.package_manager.distro_id",
            lambda: "ubuntu2204",
        )
        inputs = load_inputs({
            "INPUT_CUDA": "12.1.0",
            "INPUT_METHOD": "network",
            "INPUT_SUB-PACKAGES": '["nvcc"]',
        })
        result = run_setup(inputs, make_services())

        assert result.ok, result.error
        assert result.install_path == "apt"
        assert result.steps == ["resolve", "apt", "outputs"]
        assert downloader.calls[0][0].endswith("cuda-keyring_1.1-1_all.deb")
        commands = [p.argv() for p in runner.call_log]
        assert commands[-1] == ["sudo", "apt-get", "-y", "install", "cuda-nvcc-12-1"]
        assert result.cuda_path == "/usr/local/cuda-12.1"


class TestFailures:
    def _services_with_stream(self, make_services, **kwargs):
        services = make_services(**kwargs)
        stream = io.StringIO()
        services.workflow.stream = stream
        return services, stream

    @pytest.mark.parametrize("method", ["local", "network"])
    def test_unavailable_version(self, make_services, runner, method):
        services, stream = self._services_with_stream(make_services)
        result = run_setup(load_inputs({"INPUT_CUDA": "0.0.1", "INPUT_METHOD": method}), services)

        assert not result.ok
        assert result.error_type == "VersionUnavailable"
        assert "0.0.1" in result.error
        assert stream.getvalue().startswith("::error::")
        assert runner.call_count == 0
        assert result.to_dict() == {"error": result.error, "error_type": "VersionUnavailable"}

    def test_sub_packages_rejected_on_linux_local(self, make_services, downloader):
        services, stream = self._services_with_stream(make_services)
        inputs = load_inputs({"INPUT_CUDA": "11.2.2", "INPUT_SUB-PACKAGES": '["nvcc"]'})
        result = run_setup(inputs, services)

        assert result.error_type == "InputError"
        assert "Subpackages" in result.error
        assert result.steps == ["resolve"]
        assert downloader.calls == []

    def test_version_checked_before_sub_packages(self, make_services):
        services, stream = self._services_with_stream(make_services)
        inputs = load_inputs({"INPUT_CUDA": "0.0.1", "INPUT_SUB-PACKAGES": '["nvcc"]'})
        result = run_setup(inputs, services)

        assert result.error_type == "VersionUnavailable"
        assert result.steps == []

    def test_install_failure(self, make_services):
        class FailingInstaller(MockCommandRunner):
            def run(self, plan):
                if plan.label == "CUDA installation":
                    raise subprocess.CalledProcessError(1, plan.argv())
                return super().run(plan)

        services, stream = self._services_with_stream(make_services)
        services.runner = FailingInstaller()

        result = run_setup(load_inputs({"INPUT_CUDA": "11.2.2"}), services)

        assert result.error_type == "InstallFailed"
        assert result.steps == ["resolve", "acquire"]
        assert "::error::Error during CUDA installation" in stream.getvalue()

    def test_platform_detection_failure(self, monkeypatch):
        monkeypatch.setattr("sys.platform", "darwin")
        result = run_setup(load_inputs({"INPUT_CUDA": "11.2.2"}))
        assert result.error_type == "UnsupportedPlatform"
        assert result.error == "Unsupported OS: darwin"


class TestSetupResult:
    def test_to_dict_success(self):
        result = SetupResult(cuda="11.2.2", cuda_path="/usr/local/cuda-11.2",
                             install_path="runfile", steps=["resolve"])
        assert result.ok
        assert result.to_dict()["CUDA_PATH"] == "/usr/local/cuda-11.2"
