"""
Shared fixtures: isolated caches, a fresh rate limiter and no model
providers unless a test configures one.
"""
import pytest
from app.core.cache import get_dataset_cache, get_stats_cache
from app.core.performance import PerformanceMonitor
from app.core.rate_limit import limiter
from app.services import ai_insights


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setattr(ai_insights, "_groq_client", None)
    monkeypatch.setattr(ai_insights, "_gemini_model", None)
    get_dataset_cache().clear()
    get_stats_cache().clear()
    limiter.reset()
    yield
    PerformanceMonitor.clear_metrics()


@pytest.fixture
def sales_rows():
    """Twelve rows with an ID, a date, a currency column and a units column."""
    rows = []
    for i in range(12):
        rows.append({
            'order_id': i + 1,
            'order_date': f"2024-01-{i + 1:02d}",
            'Region': ['North', 'South', 'East'][i % 3],
            'Units': 10 + i,
            'Revenue': 100.0 + 20.0 * i,
        })
    return rows
