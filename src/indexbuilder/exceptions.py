class IndexBuilderError(Exception):
    """Base exception for all application-specific errors."""

    pass


# --- 1. Errors related to loading and parsing the pipeline configuration ---
class ConfigurationError(IndexBuilderError):
    """Base class for errors encountered while finding, reading, or parsing config files."""

    pass


class ConfigFileMissingError(ConfigurationError):
    """Raised when the pipeline configuration file cannot be found."""

    pass


class ConfigParsingError(ConfigurationError):
    """Raised when a YAML configuration file is syntactically incorrect."""

    pass


class ConfigValidationError(ConfigurationError):
    """Raised when the configuration fails structural validation (e.g., Pydantic)."""

    pass


# --- 2. Errors raised by the pipeline steps ---
class PipelineError(IndexBuilderError):
    """Base class for errors that abort a pipeline run."""

    pass


class FetchError(PipelineError):
    """Raised when a repository or branch does not exist or is unreachable."""

    pass


class BuildError(PipelineError):
    """Raised when a command inside the build environment exits non-zero."""

    pass


class ReadError(PipelineError):
    """Raised when an expected file is absent from a built environment."""

    pass


class ReportError(PipelineError):
    """Raised when the project info could not be delivered to the API endpoint."""

    pass


class ImageBuildError(PipelineError):
    """Raised when the container engine fails to build the runtime image."""

    pass


class MissingCredentialsError(PipelineError):
    """Raised when registry, image name, username or password is missing."""

    pass


class PublishError(PipelineError):
    """Raised when authenticating to or pushing to the registry fails."""

    pass


class SourcePathError(PipelineError):
    """Raised when a path points outside the fetched source tree."""

    pass


class SearchPatternError(PipelineError):
    """Raised when a search pattern is not a valid regular expression."""

    pass
