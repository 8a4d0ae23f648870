"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from cuda_setup.adapters.artifacts import ArtifactUploader
from cuda_setup.adapters.cache.remote_cache import DirectoryRemoteCache
from cuda_setup.adapters.cache.tool_cache import ToolCache
from cuda_setup.adapters.mock import MockCommandRunner
from cuda_setup.adapters.workflow import WorkflowCommands
from cuda_setup.core.config.catalog import LinkCatalog
from cuda_setup.core.services.provision.platform import reset_platform_cache

_BASE = "https://developer.download.nvidia.com/compute/cuda"


class FakeDownloader:
    """Writes a small payload instead of touching the network."""

    def __init__(self, payload: bytes = b"#!/bin/sh\nexit 0\n"):
        self.payload = payload
        self.calls: list[tuple[str, Path]] = []

    def download(self, url: str, dest: Path) -> Path:
        self.calls.append((url, dest))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.payload)
        return dest


class CountingCatalogLoader:
    """Catalog loader that records how often it was called."""

    def __init__(self, catalog: LinkCatalog):
        self.catalog = catalog
        self.calls = 0

    def __call__(self) -> LinkCatalog:
        self.calls += 1
        return self.catalog


@pytest.fixture(autouse=True)
def _fresh_platform_cache():
    reset_platform_cache()
    yield
    reset_platform_cache()


@pytest.fixture
def catalog() -> LinkCatalog:
    """A small catalog: Linux local only, Windows local + network."""
    return LinkCatalog.model_validate({
        "linux": {
            "local": {
                "11.2.2": f"{_BASE}/11.2.2/local_installers/cuda_11.2.2_460.32.03_linux.run",
                "12.1.0": f"{_BASE}/12.1.0/local_installers/cuda_12.1.0_530.30.02_linux.run",
            },
        },
        "windows": {
            "local": {
                "11.2.2": f"{_BASE}/11.2.2/local_installers/cuda_11.2.2_461.33_win10.exe",
            },
            "network": {
                "11.2.2": f"{_BASE}/11.2.2/network_installers/cuda_11.2.2_win10_network.exe",
                "12.1.0": f"{_BASE}/12.1.0/network_installers/cuda_12.1.0_windows_network.exe",
            },
        },
    })


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def runner() -> MockCommandRunner:
    return MockCommandRunner()


@pytest.fixture
def tool_cache(tmp_path: Path) -> ToolCache:
    return ToolCache(root=tmp_path / "toolcache", arch="x64")


@pytest.fixture
def remote_cache(tmp_path: Path) -> DirectoryRemoteCache:
    return DirectoryRemoteCache(tmp_path / "remote")


@pytest.fixture
def uploader(tmp_path: Path) -> ArtifactUploader:
    return ArtifactUploader(tmp_path / "artifacts")


@pytest.fixture
def workflow(tmp_path: Path) -> WorkflowCommands:
    """Workflow commands writing to temp files, with an isolated environment."""
    files = {}
    for name in ("GITHUB_OUTPUT", "GITHUB_ENV", "GITHUB_PATH"):
        path = tmp_path / "runner" / name.lower()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        files[name] = str(path)
    return WorkflowCommands(environ={**files, "PATH": "/usr/bin"})


@pytest.fixture
def catalog_loader(catalog: LinkCatalog) -> CountingCatalogLoader:
    return CountingCatalogLoader(catalog)
