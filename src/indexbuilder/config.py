import yaml
import fsspec
import logging
from pathlib import PurePosixPath, PureWindowsPath
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, ConfigDict

from . import constants
from .utils.merge import deep_merge
from .exceptions import (
    ConfigParsingError,
    ConfigFileMissingError,
    ConfigValidationError,
)


logger = logging.getLogger(__name__)


class SourceModel(BaseModel):
    """
        Class Config-Validation Model describe `source`
    """
    model_config = ConfigDict(extra="forbid")

    repo: str
    branch: str = constants.DEFAULT_BRANCH

    @field_validator('repo', 'branch')
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


class BuildModel(BaseModel):
    """
        Class Config-Validation Model describe `build`

        `package_manager` is passed verbatim to the build environment.
        `target_dir` is the project subdirectory inside the repository, if any.
    """
    model_config = ConfigDict(extra="forbid")

    package_manager: str = constants.DEFAULT_PACKAGE_MANAGER
    target_dir: Optional[str] = None

    @field_validator('target_dir')
    @classmethod
    def check_relative(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        posix = PurePosixPath(value.strip())
        if posix.is_absolute() or PureWindowsPath(value).is_absolute():
            raise ValueError("must be a path relative to the repository root")
        if ".." in posix.parts:
            raise ValueError("must not contain '..' segments")
        return posix.as_posix() if posix.parts else None


class ReportModel(BaseModel):
    """
        Class Config-Validation Model describe `report`

        An empty `endpoint` disables the project info upload.
    """
    model_config = ConfigDict(extra="forbid", hide_input_in_errors=True)

    endpoint: Optional[str] = None
    token: Optional[SecretStr] = None
    timeout: Optional[float] = Field(default=None, gt=0)


class PublishTarget(BaseModel):
    """
        Class Config-Validation Model describe `publish`

        The registry address, image name and credentials needed to push an image.
        A partial target disables publishing.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, hide_input_in_errors=True)

    registry: Optional[str] = None
    image_name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None

    def missing(self) -> List[str]:
        """Names of the fields that are absent or empty."""
        missing = []
        if not self.username:
            missing.append("username")
        if self.password is None or not self.password.get_secret_value():
            missing.append("password")
        if not self.registry:
            missing.append("registry")
        if not self.image_name:
            missing.append("image_name")
        return missing

    def is_complete(self) -> bool:
        return not self.missing()

    @property
    def address(self) -> str:
        return f"{self.registry}/{self.image_name}:{constants.PUBLISH_TAG}"


class PipelineConfig(BaseModel):
    """
        Class Config-Validation Model describe top-level of config
    """
    model_config = ConfigDict(extra="forbid", hide_input_in_errors=True)

    source: SourceModel
    build: BuildModel = Field(default_factory=BuildModel)
    report: ReportModel = Field(default_factory=ReportModel)
    publish: PublishTarget = Field(default_factory=PublishTarget)
    parallel: bool = False
    require_publish: bool = False
    cache_dir: str = constants.DEFAULT_CACHE_DIR


def load_raw_config(path: str) -> Dict[str, Any]:
    """Read a YAML mapping from a local path or any fsspec URL."""
    try:
        with fsspec.open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError as e:
        raise ConfigFileMissingError(f"Configuration file not found at: {path}") from e
    try:
        config_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigParsingError(f"Error parsing YAML file: {e}") from e
    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise ConfigParsingError("Configuration file must be a YAML document containing a dictionary.")
    logger.debug(f"Successfully parsed YAML from '{path}'.")
    return config_data


class Config:
    """
    Loads and validates the pipeline configuration using Pydantic models.

    Values come from an optional YAML file (local path or any fsspec URL) with
    `overrides` (typically CLI options) merged on top; None overrides are ignored.
    """
    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.path = config_path
        raw_data: Dict[str, Any] = {}
        if self.path:
            logger.info(f"Loading configuration from '{self.path}'...")
            raw_data = load_raw_config(self.path)
        merged = deep_merge(raw_data, overrides or {})

        logger.debug("Validating pipeline configuration with Pydantic...")
        try:
            self.model = PipelineConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigValidationError(f"Configuration validation failed:\n{e}") from e
        logger.debug("Configuration validation passed.")

    @property
    def source(self) -> SourceModel:
        return self.model.source

    @property
    def build(self) -> BuildModel:
        return self.model.build

    @property
    def report(self) -> ReportModel:
        return self.model.report

    @property
    def publish(self) -> PublishTarget:
        return self.model.publish


def load_publish_target(config_path: Optional[str] = None,
                        overrides: Optional[Dict[str, Any]] = None) -> PublishTarget:
    """Validate only the `publish` section, for pushing an image built elsewhere."""
    raw_data = load_raw_config(config_path) if config_path else {}
    merged = deep_merge(raw_data.get("publish") or {}, overrides or {})
    try:
        return PublishTarget.model_validate(merged)
    except ValidationError as e:
        raise ConfigValidationError(f"Publish configuration validation failed:\n{e}") from e
