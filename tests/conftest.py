import pytest
from contextlib import contextmanager
from pathlib import Path

from indexbuilder import constants
from indexbuilder.config import PipelineConfig
from indexbuilder.datacls.contexts import SourceTree
from indexbuilder.datacls.artifacts import Image
from indexbuilder.exceptions import BuildError, ReadError, ImageBuildError, PublishError, FetchError

PROJECT_INFO = '{"indexers": {"transfers": {"path": "indexers/transfers.indexer.ts"}}}'


class FakeEngine:
    """In-memory ContainerEngine that records every call it receives."""

    def __init__(self, files=None, fail_on=(), fail_image=False, fail_push=False, fail_login=False):
        self.files = dict(files or {})
        self.fail_on = {tuple(step) for step in fail_on}
        self.fail_image = fail_image
        self.fail_push = fail_push
        self.fail_login = fail_login
        self.calls = []
        self.executed = []

    def sync(self, env):
        self.calls.append(("sync", env.steps))
        for step in env.steps:
            if step in self.fail_on:
                raise BuildError(f"'{' '.join(step)}' exited with code 1")
            if step not in self.executed:
                self.executed.append(step)
        return env.materialized(f"sha256:env{len(env.steps)}")

    def read_file(self, env, path):
        self.calls.append(("read_file", path))
        if path not in self.files:
            raise ReadError(f"File '{path}' not found in build environment")
        return self.files[path]

    def build_image(self, description):
        self.calls.append(("build_image", description.context))
        if self.fail_image:
            raise ImageBuildError("Image build failed (exit code 1)")
        return Image(id="sha256:image", tag="idxb-image:test", context=description.context)

    def sync_image(self, image):
        self.calls.append(("sync_image", image.tag))
        return image

    @contextmanager
    def registry_auth(self, registry, username, password):
        self.calls.append(("login", registry, username))
        if self.fail_login:
            raise PublishError(f"Authentication to '{registry}' failed (exit code 1)")
        try:
            yield
        finally:
            self.calls.append(("logout", registry))

    def push(self, image, address):
        self.calls.append(("push", image.tag, address))
        if self.fail_push:
            raise PublishError(f"Failed to push '{address}' (exit code 1)")
        return address

    def call_names(self):
        return [call[0] for call in self.calls]


class FakeFetcher:
    """SourceFetcher writing a small project into a temporary directory."""

    def __init__(self, root: Path, error: Exception = None, subdirs=()):
        self.root = root
        self.error = error
        self.subdirs = subdirs
        self.calls = []

    def fetch(self, repo_url, branch="main"):
        self.calls.append((repo_url, branch))
        if self.error is not None:
            raise self.error
        path = self.root / "checkout"
        path.mkdir(parents=True, exist_ok=True)
        (path / "package.json").write_text('{"name": "indexer"}')
        for subdir in self.subdirs:
            (path / subdir).mkdir(parents=True, exist_ok=True)
            (path / subdir / "package.json").write_text('{"name": "nested"}')
        return SourceTree(repo_url=repo_url, branch=branch, path=path, commit="0" * 40)


def info_path(target_dir=None):
    workdir = f"{constants.SOURCE_MOUNT}/{target_dir}" if target_dir else constants.SOURCE_MOUNT
    return f"{workdir}/{constants.PROJECT_INFO_FILE_PATH}"


@pytest.fixture
def engine():
    return FakeEngine(files={info_path(): PROJECT_INFO})


@pytest.fixture
def fetcher(tmp_path):
    return FakeFetcher(tmp_path)


@pytest.fixture
def source(fetcher):
    return fetcher.fetch("https://github.com/org/indexer", "main")


@pytest.fixture
def make_config():
    """Build a PipelineConfig from keyword sections."""
    def _make(**sections) -> PipelineConfig:
        data = {"source": {"repo": "https://github.com/org/indexer", "branch": "main"}}
        data.update(sections)
        return PipelineConfig.model_validate(data)
    return _make


COMPLETE_PUBLISH = {
    "registry": "ghcr.io/org",
    "image_name": "indexer",
    "username": "bot",
    "password": "s3cr3t-value",
}

