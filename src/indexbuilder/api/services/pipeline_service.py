import asyncio
import hashlib
import logging
import threading
import time
from typing import Dict, Optional

from ...builder.pipeline import Pipeline
from ...config import PipelineConfig
from ...protocols import ContainerEngine, SourceFetcherProtocol
from .log_handle import RunLogHandler, current_run

runs: Dict[str, Dict] = {}
threads: Dict[str, threading.Thread] = {}


def run_pipeline_job(run_id: str, config: PipelineConfig,
                     engine: Optional[ContainerEngine], fetcher: Optional[SourceFetcherProtocol]):
    run = runs[run_id]
    run["status"] = "running"
    current_run.set(run_id)
    logger = logging.getLogger("indexbuilder")
    handler = RunLogHandler(run_id, run["logs"])
    logger.addHandler(handler)
    try:
        result = asyncio.run(Pipeline(config, engine=engine, fetcher=fetcher).run())
        run["result"] = result
        run["status"] = "completed"
    except Exception as e:
        logging.getLogger(__name__).error(f"Pipeline run {run_id} failed: {e}")
        run["error"] = str(e)
        run["error_type"] = e.__class__.__name__
        run["status"] = "failed"
    finally:
        run["end_time"] = time.time()
        logger.removeHandler(handler)


class PipelineService:
    def __init__(self, engine: Optional[ContainerEngine] = None, fetcher: Optional[SourceFetcherProtocol] = None):
        self.engine = engine
        self.fetcher = fetcher

    def start_run(self, config: PipelineConfig) -> str:
        timestamp = str(time.time())
        run_id = hashlib.sha256(f"{config.source.repo}@{config.source.branch}:{timestamp}".encode()).hexdigest()[:32]
        runs[run_id] = {
            "run_id": run_id,
            "repo": config.source.repo,
            "status": "started",
            "start_time": time.time(),
            "end_time": None,
            "error": None,
            "error_type": None,
            "result": None,
            "logs": [],
        }
        thread = threading.Thread(
            target=run_pipeline_job,
            args=(run_id, config, self.engine, self.fetcher),
            name=f"idxb-run-{run_id[:8]}",
        )
        threads[run_id] = thread
        thread.start()
        return run_id

    def wait(self, run_id: str, timeout: Optional[float] = None) -> Optional[Dict]:
        thread = threads.get(run_id)
        if thread is not None:
            thread.join(timeout)
        return runs.get(run_id)

    def get_run_status(self, run_id: str) -> Optional[Dict]:
        run = runs.get(run_id)
        if not run:
            return None
        return {key: value for key, value in run.items() if key != "logs"}

    def get_run_logs(self, run_id: str, since: int = 0) -> Optional[Dict]:
        run = runs.get(run_id)
        if not run:
            return None
        logs = run["logs"][since:]
        return {"logs": logs, "last_index": since + len(logs)}
