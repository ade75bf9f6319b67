import click
import logging
import traceback
import asyncio
import uvicorn
from pathlib import Path

from . import constants
from .config import Config, PipelineConfig, load_publish_target
from .builder import Pipeline, prepare_environment, build as build_step, generate_and_send, build_image, publish as publish_step
from .datacls.artifacts import Image
from .engine import DockerEngine
from .io import GitSourceFetcher, grep_tree
from .utils import setup_logger, parse_module_levels
from .exceptions import (
    IndexBuilderError,
    ConfigurationError,
    PipelineError,
)
from .api.main import app
from . import __version__


def complete_config_files(ctx, param, incomplete):
    """Auto-complete .yml and .yaml config files in current directory"""
    try:
        cwd = Path.cwd()
        yml_files = list(cwd.glob('*.yml')) + list(cwd.glob('*.yaml'))
        return sorted(f.name for f in yml_files if f.name.startswith(incomplete))
    except OSError as e:
        logging.debug(f"Config file auto-completion failed: {e}")
        return []


def setup_logging(debug: bool, log_levels: str = None, log_file: str = None):
    """Setup logger with debug and module-level configuration"""
    setup_logger(debug=debug, module_levels=parse_module_levels(log_levels), log_file=log_file)


def _abort(message: str):
    logging.error(message)
    ctx = click.get_current_context(silent=True)
    if ctx is not None and ctx.obj and ctx.obj.get('debug'):
        traceback.print_exc()
    raise click.Abort()


def handle_errors(func):
    """Decorator to handle common exceptions"""
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConfigurationError as e:
            _abort(f"Configuration error: {e}")
        except PipelineError as e:
            _abort(f"{e.__class__.__name__}: {e}")
        except IndexBuilderError as e:
            _abort(f"An unexpected application error occurred: {e}")
        except Exception as e:
            _abort(f"An unexpected error occurred: {e}")
    return wrapper


def pipeline_options(func):
    """Options shared by every command that loads a pipeline configuration"""
    options = [
        click.option('-c', '--config', 'config_file', shell_complete=complete_config_files,
                     help='YAML configuration file (local path or fsspec URL)'),
        click.option('-r', '--repo', help='Git repository URL (https:// is assumed when missing)'),
        click.option('-b', '--branch', help=f"Branch to build (default: {constants.DEFAULT_BRANCH})"),
        click.option('-p', '--package-manager', help=f"Package manager (default: {constants.DEFAULT_PACKAGE_MANAGER})"),
        click.option('-t', '--target-dir', help='Project subdirectory inside the repository'),
        click.option('--api-endpoint', help='Endpoint receiving the project info'),
        click.option('--api-token', envvar=constants.API_TOKEN_ENV, help='Bearer token for the endpoint'),
        click.option('--registry', help='Registry address, e.g. ghcr.io/org'),
        click.option('--image-name', help='Image name inside the registry'),
        click.option('--username', help='Registry username'),
        click.option('--password', envvar=constants.REGISTRY_PASSWORD_ENV,
                     help=f"Registry password (prefer ${constants.REGISTRY_PASSWORD_ENV})"),
        click.option('--parallel/--sequential', default=None,
                     help='Run project info and image build concurrently'),
        click.option('--require-publish', is_flag=True, default=None,
                     help='Fail instead of skipping when publish details are missing'),
        click.option('--cache-dir', help=f"Directory for fetched sources (default: {constants.DEFAULT_CACHE_DIR})"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def load_config(config_file=None, repo=None, branch=None, package_manager=None, target_dir=None,
                api_endpoint=None, api_token=None, registry=None, image_name=None, username=None,
                password=None, parallel=None, require_publish=None, cache_dir=None) -> PipelineConfig:
    """Merge command line options over the optional config file"""
    overrides = {
        "source": {"repo": repo, "branch": branch},
        "build": {"package_manager": package_manager, "target_dir": target_dir},
        "report": {"endpoint": api_endpoint, "token": api_token},
        "publish": {
            "registry": registry,
            "image_name": image_name,
            "username": username,
            "password": password,
        },
        "parallel": parallel,
        "require_publish": require_publish or None,
        "cache_dir": cache_dir,
    }
    return Config(config_file, overrides).model


@handle_errors
def do_run(options: dict):
    """Execute run command"""
    config = load_config(**options)
    result = asyncio.run(Pipeline(config).run())
    click.echo(result.model_dump_json(indent=2))


@handle_errors
def do_build(options: dict):
    """Execute build command - fetch and build only"""
    config = load_config(**options)
    engine = DockerEngine()
    source = GitSourceFetcher(config.cache_dir).fetch(config.source.repo, config.source.branch)
    env = prepare_environment(source, config.build.target_dir)
    built = build_step(env, config.build.package_manager, engine)
    click.echo(built.image_id)


@handle_errors
def do_info(options: dict):
    """Execute info command - build, write project info and relay it"""
    config = load_config(**options)
    engine = DockerEngine()
    source = GitSourceFetcher(config.cache_dir).fetch(config.source.repo, config.source.branch)
    env = prepare_environment(source, config.build.target_dir)
    built = build_step(env, config.build.package_manager, engine)
    project_info = generate_and_send(
        built, engine,
        api_endpoint=config.report.endpoint,
        api_bearer_token=config.report.token,
        timeout=config.report.timeout,
    )
    click.echo(project_info)


@handle_errors
def do_image(options: dict):
    """Execute image command - build the runtime image only"""
    config = load_config(**options)
    source = GitSourceFetcher(config.cache_dir).fetch(config.source.repo, config.source.branch)
    image = build_image(source, DockerEngine(), target_dir=config.build.target_dir)
    click.echo(image.tag)


@handle_errors
def do_publish(image_ref: str, config_file: str, registry: str, image_name: str, username: str, password: str):
    """Execute publish command - push an existing local image"""
    target = load_publish_target(config_file, {
        "registry": registry,
        "image_name": image_name,
        "username": username,
        "password": password,
    })
    image = Image(id=image_ref, tag=image_ref, context=Path.cwd())
    address = publish_step(image, target, DockerEngine())
    click.echo(address)


@handle_errors
def do_grep(pattern: str, options: dict):
    """Execute grep command - search the fetched source tree"""
    config = load_config(**options)
    source = GitSourceFetcher(config.cache_dir).fetch(config.source.repo, config.source.branch)
    root = source.directory(config.build.target_dir)
    matches = grep_tree(root, pattern)
    if not matches:
        logging.info(f"No matches for '{pattern}'.")
        return
    for match in matches:
        click.echo(match)


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('-l', '--log-levels', envvar=constants.LOG_LEVELS_ENV,
              help="Comma-separated per-module log levels (e.g., 'steps=DEBUG,docker=INFO')")
@click.option('-f', '--log-file', help='Path to log file')
@click.version_option(version=__version__, prog_name='indexbuilder')
@click.pass_context
def cli(ctx, debug, log_levels, log_file):
    """Index Builder - Build, describe and publish indexer images from a git repository

    \b
    Examples:
      idxb run -r github.com/org/indexer -b main     Run the whole pipeline
      idxb run -c pipeline.yml --parallel            Run with a config file
      idxb grep -r github.com/org/indexer defineIndexer
      idxb serve                                     Start the HTTP API
    """
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    setup_logging(debug, log_levels, log_file)


@cli.command()
@pipeline_options
@click.pass_context
def run(ctx, **options):
    """Fetch, build, report project info, build the image and publish it

    \b
    Publishing is skipped with a warning when registry details are
    incomplete, unless --require-publish is given.

    \b
    Examples:
      idxb run -r github.com/org/indexer
      IDXB_REGISTRY_PASSWORD=... idxb run -c pipeline.yml --registry ghcr.io/org
    """
    do_run(options)


@cli.command()
@pipeline_options
@click.pass_context
def build(ctx, **options):
    """Install dependencies and build the project"""
    do_build(options)


@cli.command()
@pipeline_options
@click.pass_context
def info(ctx, **options):
    """Build the project and print (and optionally send) its project info"""
    do_info(options)


@cli.command()
@pipeline_options
@click.pass_context
def image(ctx, **options):
    """Build the indexer runtime image"""
    do_image(options)


@cli.command()
@click.argument('image_ref')
@click.option('-c', '--config', 'config_file', shell_complete=complete_config_files,
              help='YAML configuration file; only its publish section is used')
@click.option('--registry', help='Registry address, e.g. ghcr.io/org')
@click.option('--image-name', help='Image name inside the registry')
@click.option('--username', help='Registry username')
@click.option('--password', envvar=constants.REGISTRY_PASSWORD_ENV,
              help=f"Registry password (prefer ${constants.REGISTRY_PASSWORD_ENV})")
@click.pass_context
def publish(ctx, image_ref, config_file, registry, image_name, username, password):
    """Push an existing local image to the configured registry

    \b
    Examples:
      idxb publish idxb-image:abc123 --registry ghcr.io/org --image-name indexer --username bot
    """
    do_publish(image_ref, config_file, registry, image_name, username, password)


@cli.command()
@click.argument('pattern')
@pipeline_options
@click.pass_context
def grep(ctx, pattern, **options):
    """Search the fetched source tree for a regular expression"""
    do_grep(pattern, options)


@cli.command()
@click.option('--host', default='0.0.0.0', help='Bind address')
@click.option('--port', default=8000, type=int, help='Bind port')
@click.pass_context
def serve(ctx, host, port):
    """Start the HTTP API server"""
    uvicorn.run(app, host=host, port=port)
