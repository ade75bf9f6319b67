"""
Index Builder Protocol Definitions

This module contains the Protocol definitions for the external collaborators
of a pipeline run: the container engine and the source fetcher.

Protocols are the foundation layer with no dependencies on the engine or
fetch implementations, so tests can substitute in-memory fakes.
"""

from typing import ContextManager, Protocol, runtime_checkable

from pydantic import SecretStr

from .datacls.contexts import SourceTree, BuildEnvironment
from .datacls.artifacts import Image, ImageDescription


@runtime_checkable
class ContainerEngine(Protocol):
    """
    Protocol for container build engines.

    Engines execute build environments, read files out of them, build images
    from an ImageDescription and push images to a registry.
    """

    def sync(self, env: BuildEnvironment) -> BuildEnvironment:
        """
        Execute every step of `env` in order, stopping at the first failure.

        Returns:
            The same environment with `image_id` set

        Raises:
            BuildError: a step exited non-zero
        """
        ...

    def read_file(self, env: BuildEnvironment, path: str) -> str:
        """
        Read a file from a materialized environment.

        Args:
            env: Environment previously returned by `sync`
            path: Absolute path inside the environment

        Raises:
            ReadError: the file does not exist
        """
        ...

    def build_image(self, description: ImageDescription) -> Image:
        """
        Build an image from a recipe and its context.

        Raises:
            ImageBuildError: the engine reported a build failure
        """
        ...

    def sync_image(self, image: Image) -> Image:
        """Force the image to be present in the engine before it is published."""
        ...

    def registry_auth(self, registry: str, username: str, password: SecretStr) -> ContextManager[None]:
        """Authenticate to `registry` for the duration of the context."""
        ...

    def push(self, image: Image, address: str) -> str:
        """Tag `image` as `address`, push it and return the published address."""
        ...


@runtime_checkable
class SourceFetcherProtocol(Protocol):
    """
    Protocol for source fetch services.
    """

    def fetch(self, repo_url: str, branch: str = "main") -> SourceTree:
        """
        Obtain a snapshot of `repo_url` at `branch`.

        Raises:
            FetchError: the repository or branch does not exist or is unreachable
        """
        ...
