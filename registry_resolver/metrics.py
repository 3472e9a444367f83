"""Metrics sinks and the instrumented Remote decorator."""
import abc
import collections
import logging
import time

logger = logging.getLogger(__name__)


class Metrics(abc.ABC):

    @abc.abstractmethod
    def observe(self, operation: str, success: bool, duration: float):
        """Record the outcome and latency (seconds) of one Remote call."""
        raise NotImplementedError()


class NoopMetrics(Metrics):

    def observe(self, operation, success, duration):
        pass


class LoggingMetrics(Metrics):
    """Logs every observation and keeps per-operation outcome counters."""

    def __init__(self):
        self.counters = collections.Counter()

    def observe(self, operation, success, duration):
        outcome = 'success' if success else 'error'
        self.counters[operation, outcome] += 1
        logger.debug('registry-request operation=%s outcome=%s duration=%.3fs', operation, outcome, duration)


class InstrumentedRemote:
    """Forwards every call to `inner`, reporting each one to `metrics`."""

    def __init__(self, inner, metrics: Metrics):
        self.inner = inner
        self.metrics = metrics

    def _observe(self, operation, success, started):
        try:
            self.metrics.observe(operation, success, time.monotonic() - started)
        except Exception:
            logger.exception('Failed to record metrics for %s', operation)

    async def _instrument(self, operation, call, *args):
        started = time.monotonic()
        try:
            result = await call(*args)
        except BaseException:
            self._observe(operation, False, started)
            raise
        self._observe(operation, True, started)
        return result

    async def list_tags(self, repository):
        return await self._instrument('list_tags', self.inner.list_tags, repository)

    async def fetch_manifest(self, repository, tag):
        return await self._instrument('fetch_manifest', self.inner.fetch_manifest, repository, tag)

    async def cancel(self):
        return await self._instrument('cancel', self.inner.cancel)


__all__ = ['Metrics', 'NoopMetrics', 'LoggingMetrics', 'InstrumentedRemote']
