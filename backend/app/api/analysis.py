"""
Narrative endpoints: dataset analysis, dashboard commands and chart insights.

All of them degrade to fixed fallback answers when no model provider is
configured, so they never fail because of the language model.
"""
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Request
from starlette.concurrency import run_in_threadpool
from app.api.routes import api_error, load_dataset, load_stats
from app.core.config import get_settings
from app.core.errors import ErrorCodes
from app.core.rate_limit import limiter, per_minute_limit
from app.core.schemas import (
    AIAnalysisResult,
    ChartInsightRequest,
    CommandRequest,
    CommandResponse,
    DatasetStats,
    MissionSettings,
)
from app.services.ai_insights import analyze_dataset, get_deep_insight, process_dashboard_command

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter()


def describe_columns(stats: DatasetStats) -> str:
    """Column list handed to the model, e.g. 'Revenue (Numeric, Currency)'."""
    return ", ".join(
        f"{c.name} ({c.type.value}, {c.semantic_type.value})" for c in stats.column_profiles
    )


@router.post(
    "/datasets/{dataset_id}/analysis",
    response_model=AIAnalysisResult,
    response_model_by_alias=True
)
@limiter.limit(per_minute_limit)
async def analyze(dataset_id: str, request: Request, mission: Optional[MissionSettings] = None):
    """
    Persona, briefing, insights, actions and suggested charts for a dataset,
    plus an initial dashboard layout built from the suggested charts.
    """
    dataset = load_dataset(dataset_id, request)
    stats = load_stats(dataset_id, dataset)
    mission = mission or MissionSettings()
    sample = dataset.rows[:settings.ai_sample_rows]

    try:
        result = await run_in_threadpool(analyze_dataset, stats, sample, mission)
    except Exception as e:
        logger.error(f"Dataset analysis failed unexpectedly: {e}", exc_info=True)
        raise api_error(500, ErrorCodes.UNKNOWN_ERROR, request)

    if result.degraded:
        logger.info("Returning fallback analysis (narrative model unavailable)")
    return result


@router.post(
    "/datasets/{dataset_id}/command",
    response_model=CommandResponse,
    response_model_by_alias=True
)
async def dashboard_command(dataset_id: str, body: CommandRequest, request: Request):
    """Answer a question about the dashboard or apply a requested layout change."""
    dataset = load_dataset(dataset_id, request)
    stats = load_stats(dataset_id, dataset)
    context = f"{dataset.filename}, {stats.row_count} rows"

    try:
        return await run_in_threadpool(
            process_dashboard_command, body.layout, body.command, describe_columns(stats), context
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Dashboard command failed unexpectedly: {e}", exc_info=True)
        raise api_error(500, ErrorCodes.UNKNOWN_ERROR, request)


@router.post("/insights/chart")
async def chart_insight(body: ChartInsightRequest):
    """Short observation and one recommended adjustment for a single chart."""
    insight = await run_in_threadpool(
        get_deep_insight, body.chart_title, body.chart_context, body.dataset_topic, body.data_summary
    )
    return {"insight": insight}
