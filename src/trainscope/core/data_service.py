# TrainScope — Run Data Service

"""
Fetch boundary for run data.

Raw rows come from a RunDataSource (the analytical store behind the API),
pass through the read-through QueryCache, and are decoded once into typed
models. A malformed payload degrades the affected view to "no data"
instead of raising into the rendering pipeline.
"""

from typing import Any, Dict, List, Protocol, Union

from trainscope.core.errors import PayloadError
from trainscope.core.models import (
    HistogramFrame,
    LogKind,
    MediaFrame,
    MetricSample,
    decode_histogram_rows,
    decode_media_rows,
    decode_metric_rows,
)
from trainscope.core.query_cache import QueryCache
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]
LogData = Union[List[MetricSample], List[HistogramFrame], List[MediaFrame]]


class RunDataSource(Protocol):
    """Remote queries, one list of rows per (tenant, project, run, log)."""

    def fetch_metric_rows(self, tenant: str, project: str, run: str, log_name: str) -> List[Row]:
        ...

    def fetch_histogram_rows(self, tenant: str, project: str, run: str, log_name: str) -> List[Row]:
        ...

    def fetch_file_rows(self, tenant: str, project: str, run: str, log_name: str,
                        kind: LogKind) -> List[Row]:
        ...


class RunDataService:
    """
    Typed, cached access to run data.

    Usage:
        service = RunDataService(source, QueryCache(store))
        frames = service.histogram_frames("org", "proj", "run-1", "weights/fc1")
    """

    def __init__(self, source: RunDataSource, queries: QueryCache):
        self._source = source
        self._queries = queries

    def metric_samples(self, tenant: str, project: str, run: str, log_name: str,
                       finished: bool = False) -> List[MetricSample]:
        """Scalar series ordered by step; [] when missing or malformed."""
        rows = self._queries.fetch(
            ("metric", tenant, project, run, log_name),
            lambda: self._source.fetch_metric_rows(tenant, project, run, log_name),
            finished=finished,
        )
        return self._decode(rows, decode_metric_rows, LogKind.METRIC, log_name)

    def histogram_frames(self, tenant: str, project: str, run: str, log_name: str,
                         finished: bool = False) -> List[HistogramFrame]:
        """Distribution frames ordered by step; [] when missing or malformed."""
        rows = self._queries.fetch(
            ("histogram", tenant, project, run, log_name),
            lambda: self._source.fetch_histogram_rows(tenant, project, run, log_name),
            finished=finished,
        )
        return self._decode(rows, decode_histogram_rows, LogKind.HISTOGRAM, log_name)

    def media_frames(self, tenant: str, project: str, run: str, log_name: str,
                     kind: LogKind, finished: bool = False) -> List[MediaFrame]:
        """Image/audio/video file references ordered by step."""
        rows = self._queries.fetch(
            ("files", kind.value, tenant, project, run, log_name),
            lambda: self._source.fetch_file_rows(tenant, project, run, log_name, kind),
            finished=finished,
        )
        return self._decode(rows, decode_media_rows, kind, log_name)

    def fetch(self, kind: Union[LogKind, str], tenant: str, project: str, run: str,
              log_name: str, finished: bool = False) -> LogData:
        """Dispatch on the log kind; every LogKind is handled."""
        kind = LogKind.parse(kind)
        if kind is LogKind.METRIC:
            return self.metric_samples(tenant, project, run, log_name, finished)
        if kind is LogKind.HISTOGRAM:
            return self.histogram_frames(tenant, project, run, log_name, finished)
        if kind in (LogKind.IMAGE, LogKind.AUDIO, LogKind.VIDEO):
            return self.media_frames(tenant, project, run, log_name, kind, finished)
        raise AssertionError(f"Unhandled log kind: {kind}")

    @staticmethod
    def _decode(rows, decoder, kind: LogKind, log_name: str) -> list:
        if not rows:
            return []
        try:
            return decoder(rows)
        except PayloadError as e:
            logger.warning("Rejected %s payload for %s: %s", kind.value, log_name, e)
            return []
