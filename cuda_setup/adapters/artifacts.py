"""
Build artifact upload — keeps diagnostic files (installer logs) after a run.

Artifacts are copied to ``<root>/<artifact name>/``, preserving each
file's path relative to the given root directory.  The root is
``CUDA_SETUP_ARTIFACT_DIR`` when set, else ``<RUNNER_TEMP>/artifacts``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ARTIFACT_DIR_ENV = "CUDA_SETUP_ARTIFACT_DIR"


class UploadResult(BaseModel):
    """Outcome of one artifact upload."""

    artifact_name: str
    uploaded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class ArtifactUploader:
    """Stores named artifacts in a directory."""

    def __init__(self, root: Path):
        self.root = root

    def upload(
        self,
        name: str,
        files: list[str],
        root_directory: str,
        *,
        continue_on_error: bool = True,
    ) -> UploadResult:
        """Upload ``files`` as artifact ``name``.

        Args:
            name: Artifact name.
            files: Absolute file paths to include.
            root_directory: Prefix stripped from each path.
            continue_on_error: Record per-file failures instead of raising.

        Returns:
            UploadResult listing uploaded and failed files.
        """
        result = UploadResult(artifact_name=name)
        target_root = self.root / name

        for file in files:
            src = Path(file)
            try:
                rel = src.relative_to(root_directory)
                dest = target_root / rel
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dest)
                result.uploaded.append(str(dest))
            except (OSError, ValueError) as e:
                if not continue_on_error:
                    raise
                logger.debug("Could not upload %s: %s", src, e)
                result.failed.append(file)

        logger.debug(
            "Artifact %s: %d uploaded, %d failed",
            name, len(result.uploaded), len(result.failed),
        )
        return result


def uploader_from_env() -> ArtifactUploader:
    """Uploader rooted at the configured artifact directory."""
    root = os.environ.get(ARTIFACT_DIR_ENV)
    if root:
        return ArtifactUploader(Path(root))
    temp = os.environ.get("RUNNER_TEMP") or tempfile.gettempdir()
    return ArtifactUploader(Path(temp) / "artifacts")
