"""Run the quick-start workflow: ``python -m mongo_quickstart``."""

from __future__ import annotations

import asyncio
import logging
import sys

from .config import WorkflowConfig
from .types import StepError
from .workflow import run_workflow

logger = logging.getLogger("mongo_quickstart")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure the root logger once.

    Calling it again is a no-op so tests and embedding programs keep
    their own handlers.
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main(config: WorkflowConfig | None = None) -> int:
    """Run the workflow and return the process exit status."""
    setup_logging()
    try:
        asyncio.run(run_workflow(config))
    except StepError as e:
        logger.error("Quick-start aborted in step %r: %s", e.step, e.cause)
        return 1
    logger.info("Quick-start finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
