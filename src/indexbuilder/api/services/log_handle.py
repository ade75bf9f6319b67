import logging
from contextvars import ContextVar
from typing import List, Optional

# Id of the pipeline run executing in the current context
current_run: ContextVar[Optional[str]] = ContextVar("current_run", default=None)


class RunLogHandler(logging.Handler):
    """Collects the log records emitted while a given run is the current run."""

    def __init__(self, run_id: str, logs_list: List[str]):
        super().__init__()
        self.run_id = run_id
        self.logs_list = logs_list
        self.setFormatter(logging.Formatter('[%(levelname).4s] %(name)s: %(message)s'))

    def filter(self, record: logging.LogRecord) -> bool:
        return current_run.get() == self.run_id and super().filter(record)

    def emit(self, record: logging.LogRecord):
        self.logs_list.append(self.format(record))
