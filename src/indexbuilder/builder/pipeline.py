import asyncio
import contextvars
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

from ..config import PipelineConfig
from ..datacls.artifacts import PipelineResult
from ..engine import DockerEngine
from ..io import GitSourceFetcher
from ..protocols import ContainerEngine, SourceFetcherProtocol
from .steps import prepare_environment, build, generate_and_send, build_image, publish

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Pipeline:
    """
    Runs fetch, build, project info reporting, image build and publish in order.

    Every blocking call goes through a thread pool so `run` can be awaited.
    With `parallel` set, project info reporting and the image build run
    concurrently and are both awaited before publishing.
    """

    def __init__(
        self,
        config: PipelineConfig,
        engine: Optional[ContainerEngine] = None,
        fetcher: Optional[SourceFetcherProtocol] = None,
        image_template: Optional[str] = None,
    ):
        self.config = config
        self.engine = engine or DockerEngine()
        self.fetcher = fetcher or GitSourceFetcher(config.cache_dir)
        self.image_template = image_template
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        logger.debug(f"Pipeline initialized for '{config.source.repo}'@{config.source.branch}")

    async def _call(self, func: Callable[..., T], *args, **kwargs) -> T:
        # carry context variables (e.g. the API run id used for log capture) into the worker
        ctx = contextvars.copy_context()
        call = functools.partial(ctx.run, func, *args, **kwargs)
        return await self._loop.run_in_executor(self._executor, call)

    async def run(self) -> PipelineResult:
        """Orchestrates the entire pipeline step by step."""
        cfg = self.config
        logger.info(f"[Pipeline] Starting pipeline for '{cfg.source.repo}'@{cfg.source.branch}...")
        self._loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=2) as executor:
            self._executor = executor
            try:
                result = await self._run_steps()
            finally:
                self._executor = None
        logger.info("[Pipeline] Pipeline finished.")
        return result

    async def _run_steps(self) -> PipelineResult:
        cfg = self.config

        source = await self._call(self.fetcher.fetch, cfg.source.repo, cfg.source.branch)
        env = prepare_environment(source, cfg.build.target_dir)
        built = await self._call(build, env, cfg.build.package_manager, self.engine)

        info_step = functools.partial(
            generate_and_send, built, self.engine,
            api_endpoint=cfg.report.endpoint,
            api_bearer_token=cfg.report.token,
            timeout=cfg.report.timeout,
        )
        image_step = functools.partial(
            build_image, source, self.engine,
            target_dir=cfg.build.target_dir,
            template=self.image_template,
        )
        if cfg.parallel:
            logger.debug("[Pipeline] Running project info and image build concurrently...")
            results = await asyncio.gather(self._call(info_step), self._call(image_step), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            project_info, image = results
        else:
            project_info = await self._call(info_step)
            image = await self._call(image_step)

        published_address = None
        if cfg.publish.is_complete() or cfg.require_publish:
            published_address = await self._call(publish, image, cfg.publish, self.engine)
        else:
            logger.warning(
                f"[Pipeline] Publishing skipped, missing: {', '.join(cfg.publish.missing())}"
            )

        return PipelineResult(image=image, project_info=project_info, published_address=published_address)


def run_pipeline(config: PipelineConfig, engine: Optional[ContainerEngine] = None,
                 fetcher: Optional[SourceFetcherProtocol] = None) -> PipelineResult:
    """Synchronous entry point around Pipeline.run."""
    return asyncio.run(Pipeline(config, engine=engine, fetcher=fetcher).run())
