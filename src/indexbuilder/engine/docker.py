import hashlib
import json
import logging
import tempfile
from contextlib import contextmanager
from importlib import resources
from pathlib import Path
from typing import Iterator, Optional

from jinja2 import Environment
from pydantic import SecretStr
from python_on_whales import DockerClient, docker
from python_on_whales.exceptions import DockerException

from .. import constants
from ..datacls.contexts import BuildEnvironment
from ..datacls.artifacts import Image, ImageDescription
from ..exceptions import BuildError, ReadError, ImageBuildError, PublishError

logger = logging.getLogger(__name__)

ENV_TEMPLATE_TEXT = resources.files('indexbuilder').joinpath(
    'resources', 'images', constants.ENV_TEMPLATE
).read_text(encoding='utf-8')


class DockerEngine:
    """
    Container engine backed by the local Docker daemon through python-on-whales.

    A BuildEnvironment is rendered to a Dockerfile with one RUN instruction per
    step and built with the source tree as context, so unchanged steps are
    served from the layer cache. Generated Dockerfiles live in a staging
    directory outside the build context.
    """

    def __init__(self, client: Optional[DockerClient] = None):
        self.client = client or docker
        self.jinja_env = Environment(trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)
        self.env_template = self.jinja_env.from_string(ENV_TEMPLATE_TEXT)
        self.name = "DockerEngine"

    def render_environment(self, env: BuildEnvironment) -> str:
        """Render the Dockerfile that reproduces `env`."""
        return self.env_template.render(
            base_image=env.base_image,
            source_mount=constants.SOURCE_MOUNT,
            workdir=env.workdir,
            steps=[json.dumps(list(step)) for step in env.steps],
        )

    @staticmethod
    def _tag_for(prefix: str, *parts: str) -> str:
        digest = hashlib.sha256("\0".join(parts).encode()).hexdigest()[:12]
        return f"{prefix}:{digest}"

    def _build(self, context: Path, dockerfile: Path, tag: str) -> str:
        image = self.client.build(str(context), file=str(dockerfile), tags=[tag], load=True)
        if image is None:
            image = self.client.image.inspect(tag)
        return image.id

    def sync(self, env: BuildEnvironment) -> BuildEnvironment:
        if env.image_id:
            return env
        dockerfile = self.render_environment(env)
        tag = self._tag_for(constants.ENV_IMAGE_PREFIX, dockerfile, str(env.source.path), env.source.commit or "")
        logger.debug(f"[{self.name}] Materializing environment {tag} with {len(env.steps)} steps")

        with tempfile.TemporaryDirectory(prefix="idxb-") as staging:
            dockerfile_path = Path(staging) / constants.ENV_DOCKERFILE_NAME
            dockerfile_path.write_text(dockerfile, encoding="utf-8")
            try:
                image_id = self._build(env.source.path, dockerfile_path, tag)
            except DockerException as e:
                raise BuildError(
                    f"Build environment failed (exit code {e.return_code}):\n{(e.stderr or '').strip()}"
                ) from e

        logger.debug(f"[{self.name}] Environment {tag} materialized as {image_id[:19]}")
        return env.materialized(image_id)

    def read_file(self, env: BuildEnvironment, path: str) -> str:
        env = self.sync(env)
        container = self.client.container.create(env.image_id)
        try:
            with tempfile.TemporaryDirectory(prefix="idxb-") as tmp:
                local_path = Path(tmp) / Path(path).name
                try:
                    self.client.copy((container, path), str(local_path))
                except DockerException as e:
                    raise ReadError(f"File '{path}' not found in build environment") from e
                if not local_path.is_file():
                    raise ReadError(f"'{path}' in build environment is not a file")
                return local_path.read_text(encoding="utf-8")
        finally:
            container.remove()

    def build_image(self, description: ImageDescription) -> Image:
        tag = self._tag_for(constants.LOCAL_IMAGE_PREFIX, description.template, str(description.context))
        logger.debug(f"[{self.name}] Building image {tag} from '{description.context}'")
        with tempfile.TemporaryDirectory(prefix="idxb-") as staging:
            dockerfile_path = description.materialize(Path(staging))
            try:
                image_id = self._build(description.context, dockerfile_path, tag)
            except DockerException as e:
                raise ImageBuildError(
                    f"Image build failed (exit code {e.return_code}):\n{(e.stderr or '').strip()}"
                ) from e
        return Image(id=image_id, tag=tag, context=description.context)

    def sync_image(self, image: Image) -> Image:
        try:
            self.client.image.inspect(image.id)
        except DockerException as e:
            raise PublishError(f"Image '{image.tag}' is not available in the engine") from e
        return image

    @contextmanager
    def registry_auth(self, registry: str, username: str, password: SecretStr) -> Iterator[None]:
        server = registry.split("/", 1)[0]
        logger.debug(f"[{self.name}] Logging in to '{server}' as '{username}'")
        try:
            self.client.login(server=server, username=username, password=password.get_secret_value())
        except DockerException as e:
            # the failed command line carries the password, so it is not chained
            raise PublishError(f"Authentication to '{server}' failed (exit code {e.return_code})") from None
        try:
            yield
        finally:
            try:
                self.client.logout(server=server)
            except DockerException as e:
                logger.warning(f"[{self.name}] Logout from '{server}' failed (exit code {e.return_code})")

    def push(self, image: Image, address: str) -> str:
        repository = address.rsplit(":", 1)[0]
        try:
            self.client.image.tag(image.id, address)
            self.client.image.push(address)
        except DockerException as e:
            raise PublishError(f"Failed to push '{address}' (exit code {e.return_code})") from e

        try:
            repo_digests = self.client.image.inspect(address).repo_digests or []
        except DockerException as e:
            logger.warning(f"[{self.name}] Pushed '{address}' but could not look up its digest (exit code {e.return_code})")
            return address

        for repo_digest in repo_digests:
            name, _, digest = repo_digest.partition("@")
            if digest and repository.endswith(name):
                return f"{address}@{digest}"
        return address
