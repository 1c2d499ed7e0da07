"""
Metrics endpoint for performance monitoring.
"""
from fastapi import APIRouter
from app.core.performance import PerformanceMonitor
from app.core.cache import get_dataset_cache, get_stats_cache

router = APIRouter()


@router.get("/metrics")
async def get_metrics():
    """
    Timing statistics for parse, profile and chart preparation, plus the
    number of datasets and statistics snapshots currently cached.
    """
    return {
        'performance': PerformanceMonitor.get_all_metrics(),
        'cache': {
            'dataset_cache': get_dataset_cache().get_stats(),
            'stats_cache': get_stats_cache().get_stats()
        }
    }
