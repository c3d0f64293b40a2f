"""Index provisioning: make sure the target index exists before writes."""
import asyncio
import time
from typing import Optional

import structlog

from askdocs import config
from askdocs.errors import IndexNotReady

logger = structlog.get_logger()


class IndexProvisioner:
    """Creates a vector index when absent and waits for it to become ready."""

    def __init__(
        self,
        store,
        metric: Optional[str] = None,
        ready_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        backoff: Optional[float] = None,
    ):
        """Initialize the provisioner.

        Args:
            store: Vector database exposing list_indexes, create_index and describe_index
            metric: Similarity metric for new indexes (default from config)
            ready_timeout: Seconds to wait for a new index to report ready
            poll_interval: Initial delay between status polls
            backoff: Multiplier applied to the delay after each poll
        """
        self.store = store
        self.metric = metric or config.SIMILARITY_METRIC
        self.ready_timeout = config.INDEX_READY_TIMEOUT if ready_timeout is None else ready_timeout
        self.poll_interval = config.INDEX_POLL_INTERVAL if poll_interval is None else poll_interval
        self.backoff = config.INDEX_POLL_BACKOFF if backoff is None else backoff

        if self.poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.poll_interval}")
        if self.backoff < 1:
            raise ValueError(f"Backoff must be at least 1, got {self.backoff}")

    async def ensure_index(self, name: str, dimension: int) -> None:
        """Create the index if it does not exist, then wait until it is ready.

        Raises:
            IndexNotReady: If a newly created index is not ready within
                ready_timeout. The index may still become ready, so callers
                can retry.
        """
        logger.info("checking_index", name=name)

        existing = await self.store.list_indexes()
        if name in existing:
            logger.info("index_already_exists", name=name)
            return

        logger.info("creating_index", name=name, dimension=dimension, metric=self.metric)
        await self.store.create_index(name, dimension, self.metric)

        await self.wait_until_ready(name)

    async def wait_until_ready(self, name: str) -> None:
        """Poll index status with exponential backoff until ready or timed out."""
        started = time.monotonic()
        delay = self.poll_interval

        while True:
            description = await self.store.describe_index(name)
            waited = time.monotonic() - started

            if description.ready:
                logger.info("index_ready", name=name, waited=round(waited, 2))
                return

            remaining = self.ready_timeout - waited
            if remaining <= 0:
                logger.warning("index_not_ready", name=name, waited=round(waited, 2))
                raise IndexNotReady(name, waited)

            logger.debug("waiting_for_index", name=name, delay=delay)
            await asyncio.sleep(min(delay, remaining))
            delay *= self.backoff
