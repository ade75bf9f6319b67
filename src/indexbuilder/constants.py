# --- Log and Debug ---
# Short aliases for module names to keep CLI/env concise
LOG_ALIAS_MAP = {
    "steps": "indexbuilder.builder.steps",
    "stp": "indexbuilder.builder.steps",
    "pipe": "indexbuilder.builder.pipeline",
    "report": "indexbuilder.builder.report",
    "rpt": "indexbuilder.builder.report",
    "engine": "indexbuilder.engine",
    "eng": "indexbuilder.engine",
    "docker": "indexbuilder.engine.docker",
    "git": "indexbuilder.io.git",
    "fetch": "indexbuilder.io.git",
    "conf": "indexbuilder.config",
    "api": "indexbuilder.api",
}

# Top-level modules within indexbuilder for auto-prefixing
KNOWN_TOP_MODULES = {
    "builder",
    "engine",
    "io",
    "api",
    "datacls",
    "utils",
    "exceptions",
    "config",
}

LOG_LEVELS_ENV = "IDXB_LOG_LEVELS"


# --- Source ---
DEFAULT_BRANCH = "main"
DEFAULT_CACHE_DIR = ".idxb_cache"
SOURCES_SUBDIR = "sources"


# --- Build Environment ---
BASE_IMAGE = "node:22-alpine"
SOURCE_MOUNT = "/src"
DEFAULT_PACKAGE_MANAGER = "pnpm"
KNOWN_PACKAGE_MANAGERS = {"pnpm", "npm"}
ENV_IMAGE_PREFIX = "idxb-env"


# --- Project Info ---
PROJECT_INFO_FILE_PATH = ".apibara/project-info.json"


# --- Image ---
GENERATED_DOCKERFILE_NAME = "Dockerfile.gen"
ENV_DOCKERFILE_NAME = "Dockerfile.env"
IMAGE_TEMPLATE = "indexer"
ENV_TEMPLATE = "environment.j2"
LOCAL_IMAGE_PREFIX = "idxb-image"
PUBLISH_TAG = "latest"


# --- Report ---
REPORT_PAYLOAD_KEY = "buildInfo"


# --- Secrets from environment ---
REGISTRY_PASSWORD_ENV = "IDXB_REGISTRY_PASSWORD"
API_TOKEN_ENV = "IDXB_API_TOKEN"
