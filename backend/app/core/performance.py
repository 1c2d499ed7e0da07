"""
Timing metrics for the parse, profile and chart-preparation stages.
"""
import inspect
import time
import logging
import threading
from collections import defaultdict
from functools import wraps
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_SAMPLES = 1000  # per metric

_metrics_lock = threading.Lock()
_metrics: Dict[str, list] = defaultdict(list)


def _percentile(ordered: List[float], fraction: float) -> float:
    return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]


class PerformanceMonitor:
    """Process-wide store of recent durations per operation."""

    @staticmethod
    def record_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None):
        """
        Record a performance metric.

        Args:
            name: Metric name (e.g. 'profile_dataset')
            value: Duration in seconds
            metadata: Optional metadata (correlation_id, status, ...)
        """
        with _metrics_lock:
            samples = _metrics[name]
            samples.append({
                'value': value,
                'timestamp': time.time(),
                'metadata': metadata or {}
            })
            if len(samples) > MAX_SAMPLES:
                del samples[:-MAX_SAMPLES]

    @staticmethod
    def _summarize(samples: list) -> Optional[Dict[str, float]]:
        if not samples:
            return None
        values = sorted(m['value'] for m in samples)
        return {
            'count': len(values),
            'min': values[0],
            'max': values[-1],
            'mean': sum(values) / len(values),
            'p50': _percentile(values, 0.5),
            'p95': _percentile(values, 0.95),
            'p99': _percentile(values, 0.99),
        }

    @staticmethod
    def get_stats(metric_name: str) -> Optional[Dict[str, float]]:
        """count/min/max/mean/p50/p95/p99 for one metric, or None if unseen."""
        with _metrics_lock:
            return PerformanceMonitor._summarize(list(_metrics.get(metric_name, [])))

    @staticmethod
    def get_all_metrics() -> Dict[str, Dict[str, float]]:
        with _metrics_lock:
            snapshot = {name: list(samples) for name, samples in _metrics.items()}
        return {name: PerformanceMonitor._summarize(samples) for name, samples in snapshot.items()}

    @staticmethod
    def clear_metrics():
        """Clear all metrics (useful for testing)."""
        with _metrics_lock:
            _metrics.clear()


def _correlation_id(args, kwargs) -> Optional[str]:
    request = kwargs.get('request') or (args[0] if args else None)
    state = getattr(request, 'state', None)
    return getattr(state, 'correlation_id', None) if state is not None else None


def _finish(metric_name: str, start_time: float, correlation_id: Optional[str], error: Optional[Exception] = None):
    duration = time.time() - start_time
    metadata = {'correlation_id': correlation_id, 'status': 'error' if error else 'success'}
    if error:
        metadata['error'] = str(error)
    PerformanceMonitor.record_metric(metric_name, duration, metadata)

    if error:
        logger.error(
            f"{metric_name} failed after {duration:.3f}s: {error}",
            extra={'metric': metric_name, 'duration': duration},
            exc_info=True
        )
    else:
        logger.debug(
            f"{metric_name} completed in {duration:.3f}s",
            extra={'metric': metric_name, 'duration': duration}
        )


def track_performance(metric_name: str):
    """
    Decorator recording the duration of each call, sync or async.

    Usage:
        @track_performance("profile_dataset")
        def profile_dataset(rows):
            ...
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                correlation_id = _correlation_id(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _finish(metric_name, start_time, correlation_id, e)
                    raise
                _finish(metric_name, start_time, correlation_id)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            correlation_id = _correlation_id(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _finish(metric_name, start_time, correlation_id, e)
                raise
            _finish(metric_name, start_time, correlation_id)
            return result
        return sync_wrapper

    return decorator
