"""
Pipeline steps.

Each step takes immutable inputs, delegates the heavy lifting to a
ContainerEngine and returns a new value. None of them retries.
"""

import logging
from typing import Optional

from pydantic import SecretStr

from .. import constants
from ..config import PublishTarget
from ..datacls.contexts import SourceTree, BuildEnvironment
from ..datacls.artifacts import Image, ImageDescription
from ..exceptions import ImageBuildError, MissingCredentialsError, SourcePathError
from ..protocols import ContainerEngine
from .report import send_project_info

logger = logging.getLogger(__name__)


def workdir_for(target_dir: Optional[str] = None) -> str:
    if target_dir:
        return f"{constants.SOURCE_MOUNT}/{target_dir}"
    return constants.SOURCE_MOUNT


def prepare_environment(source: SourceTree, target_dir: Optional[str] = None) -> BuildEnvironment:
    """
    Mount `source` at /src, enter the project directory and enable corepack.

    Raises:
        SourcePathError: `target_dir` points outside the source tree
    """
    source.directory(target_dir)
    env = BuildEnvironment(source=source, workdir=workdir_for(target_dir))
    logger.debug(f"[Environment] Working directory set to '{env.workdir}'")
    return env.with_exec(["corepack", "enable"])


def build(env: BuildEnvironment, package_manager: str, engine: ContainerEngine) -> BuildEnvironment:
    """
    Install dependencies from the frozen lockfile, then build the project.

    Raises:
        BuildError: either command exited non-zero
    """
    if package_manager not in constants.KNOWN_PACKAGE_MANAGERS:
        logger.warning(f"[Build] Package manager '{package_manager}' is not one of "
                       f"{sorted(constants.KNOWN_PACKAGE_MANAGERS)}, using it as given.")
    logger.info(f"[Build] Installing dependencies and building with '{package_manager}'...")
    built = (
        env.with_package_manager(package_manager)
        .with_exec([package_manager, "install", "--frozen-lockfile"])
        .with_exec([package_manager, "apibara", "build"])
    )
    built = engine.sync(built)
    logger.info("[Build] Project built.")
    return built


def generate_and_send(
    built_env: BuildEnvironment,
    engine: ContainerEngine,
    api_endpoint: Optional[str] = None,
    api_bearer_token: Optional[SecretStr] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Write the project info file, read it back and relay it to `api_endpoint`.

    Without an endpoint the upload is skipped with a warning and the file
    contents are still returned.

    Raises:
        BuildError: the write-project-info command failed
        ReadError: the command did not produce the file
        ReportError: the upload failed
    """
    package_manager = built_env.package_manager or constants.DEFAULT_PACKAGE_MANAGER
    with_info = engine.sync(built_env.with_exec([package_manager, "apibara", "write-project-info"]))
    project_info = engine.read_file(with_info, with_info.path_in_workdir(constants.PROJECT_INFO_FILE_PATH))
    logger.debug(f"[ProjectInfo] Read {len(project_info)} characters of project info")

    if api_endpoint:
        send_project_info(api_endpoint, project_info, token=api_bearer_token, timeout=timeout)
    else:
        logger.warning("No API endpoint configured. Skipping API call.")
    return project_info


def build_image(
    source: SourceTree,
    engine: ContainerEngine,
    target_dir: Optional[str] = None,
    template: Optional[str] = None,
) -> Image:
    """
    Build the runtime image with the source tree, or `target_dir` inside it, as context.

    Raises:
        ImageBuildError: the build context is invalid or the engine failed
    """
    try:
        context = source.directory(target_dir)
    except SourcePathError as e:
        raise ImageBuildError(f"Invalid build context: {e}") from e
    if not context.is_dir():
        raise ImageBuildError(f"Build context '{target_dir}' does not exist in '{source.repo_url}'")
    if template is None:
        description = ImageDescription.indexer(context)
    else:
        description = ImageDescription(template=template, context=context)
    logger.info(f"[Image] Building image from '{context}'...")
    image = engine.build_image(description)
    logger.info(f"[Image] Built image {image.tag}")
    return image


def publish(image: Image, target: PublishTarget, engine: ContainerEngine) -> str:
    """
    Push `image` to `<registry>/<image_name>:latest`.

    Raises:
        MissingCredentialsError: part of the target is missing; nothing is attempted
        PublishError: authentication or push failed
    """
    missing = target.missing()
    if missing:
        raise MissingCredentialsError(f"Registry credentials or image details missing: {', '.join(missing)}")

    address = target.address
    logger.info(f"[Publish] Publishing image to '{address}'...")
    try:
        image = engine.sync_image(image)
        with engine.registry_auth(target.registry, target.username, target.password):
            published = engine.push(image, address)
    except Exception as e:
        logger.error(f"Failed to publish image: {e}")
        raise
    logger.info(f"Image published successfully to: {published}")
    return published
