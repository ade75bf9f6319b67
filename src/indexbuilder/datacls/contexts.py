"""
Index Builder Build Contexts

This module contains the values that flow through a pipeline run. Every model
is frozen: a step never changes the value it receives, it derives a new one.
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .. import constants
from ..exceptions import SourcePathError


class SourceTree(BaseModel):
    """
    Snapshot of a repository's files at a given branch.
    """
    model_config = ConfigDict(frozen=True)

    repo_url: str
    branch: str
    path: Path
    commit: Optional[str] = None

    def directory(self, subdir: Optional[str] = None) -> Path:
        """
        Return the snapshot root, narrowed to `subdir` when one is given.

        Raises:
            SourcePathError: `subdir` resolves outside the snapshot
        """
        if not subdir:
            return self.path
        root = self.path.resolve()
        candidate = (root / subdir).resolve()
        if candidate != root and root not in candidate.parents:
            raise SourcePathError(f"'{subdir}' is outside the source tree of '{self.repo_url}'")
        return self.path / subdir


class BuildEnvironment(BaseModel):
    """
    An execution context layered on top of a SourceTree.

    `steps` are the commands run in order on top of `base_image` with the
    source mounted at `/src`. `image_id` is set once an engine has executed
    every step.
    """
    model_config = ConfigDict(frozen=True)

    source: SourceTree
    workdir: str = constants.SOURCE_MOUNT
    base_image: str = constants.BASE_IMAGE
    steps: Tuple[Tuple[str, ...], ...] = ()
    package_manager: Optional[str] = None
    image_id: Optional[str] = None

    def with_exec(self, args: Sequence[str]) -> "BuildEnvironment":
        """Return a new environment with one more command; the result is not materialized."""
        return self.model_copy(update={"steps": self.steps + (tuple(args),), "image_id": None})

    def with_package_manager(self, package_manager: str) -> "BuildEnvironment":
        return self.model_copy(update={"package_manager": package_manager})

    def materialized(self, image_id: str) -> "BuildEnvironment":
        return self.model_copy(update={"image_id": image_id})

    def path_in_workdir(self, relative: str) -> str:
        return f"{self.workdir.rstrip('/')}/{relative}"
