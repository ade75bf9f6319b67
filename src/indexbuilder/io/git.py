import hashlib
import logging
import shutil
import tempfile
from pathlib import Path

import git

from .. import constants
from ..datacls.contexts import SourceTree
from ..exceptions import FetchError

logger = logging.getLogger(__name__)


class GitSourceFetcher:
    """
    Fetches a repository branch into a local snapshot directory.

    Every fetch clones the branch head into its own new directory under the
    cache root, named after the `url@branch` pair, so concurrent runs of the
    same repository never share a build context. The `.git` metadata is
    dropped so the snapshot holds the working tree only.
    """

    def __init__(self, cache_root: str = constants.DEFAULT_CACHE_DIR):
        self.cache_root = Path(cache_root) / constants.SOURCES_SUBDIR
        self.name = "GitFetcher"

    @staticmethod
    def normalize_url(repo_url: str) -> str:
        """Give scheme-less `host/org/repo` URLs an https scheme."""
        if "://" in repo_url or repo_url.startswith("git@"):
            return repo_url
        return f"https://{repo_url}"

    def _new_snapshot_dir(self, url: str, branch: str) -> Path:
        repo_hash = hashlib.sha256(f"{url}@{branch}".encode()).hexdigest()[:16]
        self.cache_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{repo_hash}-", dir=self.cache_root))

    def fetch(self, repo_url: str, branch: str = constants.DEFAULT_BRANCH) -> SourceTree:
        url = self.normalize_url(repo_url)
        local_path = self._new_snapshot_dir(url, branch)

        logger.info(f"[{self.name}] Cloning '{url}' (branch '{branch}')...")
        try:
            repo = git.Repo.clone_from(
                url, str(local_path), branch=branch, depth=1, single_branch=True
            )
        except git.exc.GitCommandError as e:
            shutil.rmtree(local_path, ignore_errors=True)
            stderr = (e.stderr or "").strip()
            raise FetchError(
                f"Failed to fetch branch '{branch}' of '{repo_url}': {stderr or f'git exited with {e.status}'}"
            ) from e

        try:
            commit = repo.head.commit.hexsha
        finally:
            repo.close()
        shutil.rmtree(local_path / ".git", ignore_errors=True)

        logger.info(f"[{self.name}] Fetched '{repo_url}'@{branch} at {commit[:12]}")
        return SourceTree(repo_url=repo_url, branch=branch, path=local_path, commit=commit)


def fetch_source(
    repo_url: str,
    branch: str = constants.DEFAULT_BRANCH,
    cache_root: str = constants.DEFAULT_CACHE_DIR,
) -> SourceTree:
    """Fetch `repo_url` at `branch` with a GitSourceFetcher rooted at `cache_root`."""
    return GitSourceFetcher(cache_root).fetch(repo_url, branch)
