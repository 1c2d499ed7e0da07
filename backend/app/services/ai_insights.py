"""
Narrative-generation boundary using Groq (primary) and Gemini (fallback).

The statistics pipeline never depends on this module: every public function
returns a fixed fallback object when no provider is configured, the call
fails, or the model answers with something that is not the expected JSON.
"""
import os
import re
import json
import logging
from typing import Any, Dict, List, Optional
from groq import Groq
from pydantic import ValidationError
from app.core.config import get_settings
from app.core.sanitization import sanitize_for_prompt
from app.core.schemas import (
    AIAnalysisResult,
    ChartConfig,
    CommandResponse,
    DashboardElement,
    DatasetStats,
    MissionSettings,
    SystemLog,
)

logger = logging.getLogger(__name__)

# Provider clients (singletons)
_groq_client: Optional[Groq] = None
_gemini_model = None  # Lazy loaded to avoid import if not needed

JSON_BLOCK = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```")

DEFAULT_EXECUTIVE_INSIGHTS = ["Telemetry unclear.", "Maintain current course."]
DEFAULT_RECOMMENDED_ACTIONS = ["Check sensors.", "Verify data integrity."]
NO_INSIGHT = "No tactical data available."
PROBLEM_TYPES = ("Classification", "Regression", "Clustering", "Unknown")


def get_groq_client() -> Optional[Groq]:
    """Get or create Groq client singleton."""
    global _groq_client
    if _groq_client is None:
        api_key = os.getenv("GROQ_API_KEY")
        if api_key:
            _groq_client = Groq(api_key=api_key)
            logger.info("Groq AI client initialized")
    return _groq_client


def get_gemini_model():
    """Get or create Gemini model singleton."""
    global _gemini_model
    if _gemini_model is None:
        api_key = os.getenv("GEMINI_API_KEY")
        if api_key:
            try:
                import google.generativeai as genai
                genai.configure(api_key=api_key)
                settings = get_settings()
                _gemini_model = genai.GenerativeModel(settings.gemini_model)
                logger.info(f"Gemini AI fallback initialized with model: {settings.gemini_model}")
            except Exception as e:
                logger.warning(f"Gemini initialization failed: {e}")
    return _gemini_model


def ai_available() -> bool:
    return get_groq_client() is not None or get_gemini_model() is not None


def _call_groq(prompt: str, system_prompt: str, max_tokens: int, temperature: float) -> Optional[str]:
    """Call Groq API."""
    client = get_groq_client()
    if not client:
        return None

    settings = get_settings()
    response = client.chat.completions.create(
        model=settings.groq_model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt}
        ],
        max_tokens=max_tokens,
        temperature=temperature,
        timeout=15.0
    )
    return response.choices[0].message.content


def _call_gemini(prompt: str, system_prompt: str, temperature: float) -> Optional[str]:
    """Call Gemini API (fallback)."""
    model = get_gemini_model()
    if not model:
        return None

    full_prompt = f"{system_prompt}\n\n{prompt}"
    response = model.generate_content(
        full_prompt,
        generation_config={"temperature": temperature},
        request_options={"timeout": 15}
    )
    return response.text


def _call_ai_with_fallback(
    prompt: str,
    system_prompt: str,
    max_tokens: int = 1200,
    temperature: float = 0.3
) -> Optional[str]:
    """
    Call AI with automatic fallback.

    Order: Groq -> Gemini -> None
    """
    try:
        result = _call_groq(prompt, system_prompt, max_tokens, temperature)
        if result:
            logger.debug("AI response from Groq")
            return result
    except Exception as e:
        error_str = str(e).lower()
        if "rate" in error_str or "limit" in error_str or "429" in error_str:
            logger.warning(f"Groq rate limited, trying Gemini fallback: {e}")
        else:
            logger.warning(f"Groq error, trying fallback: {e}")

    try:
        result = _call_gemini(prompt, system_prompt, temperature)
        if result:
            logger.info("AI response from Gemini (fallback)")
            return result
    except Exception as e:
        logger.error(f"Gemini fallback also failed: {e}")

    return None


def extract_json(text: str) -> Any:
    """
    Pull the JSON payload out of a model answer, either from a ```json
    fenced block or from the raw text.

    Raises:
        ValueError: if no JSON can be decoded
    """
    match = JSON_BLOCK.search(text)
    payload = match.group(1) if match else text.strip()
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError("Failed to parse JSON from AI response") from e


def fallback_analysis(settings: MissionSettings) -> AIAnalysisResult:
    """Fixed degraded-state analysis used whenever the model cannot be used."""
    return AIAnalysisResult(
        dataset_name="Unknown Signal",
        topic="General Data",
        user_persona=settings.force_persona or "System Operator",
        problem_type="Unknown",
        target_variable_suggestion=None,
        summary="Unable to establish semantic lock on data source.",
        cleaning_suggestions=[],
        suggested_charts=[],
        grounding_sources=[],
        executive_insights=["Communication failure with logic core."],
        recommended_actions=["Manual inspection required."],
        degraded=True
    )


def fallback_command_response() -> CommandResponse:
    return CommandResponse(
        chat_response="Signal interference. Unable to process command.",
        system_log=SystemLog(
            action_taken="Error Handling",
            scope="Radio System",
            new_analysis_state="Reverting to previous stable state."
        ),
        updated_layout=None
    )


def build_initial_layout(charts: List[ChartConfig]) -> List[DashboardElement]:
    """One full-width chart element per suggested chart."""
    return [
        DashboardElement(id=chart.id, type='chart', w=1, chart_config=chart)
        for chart in charts
    ]


def _advanced_stats_context(stats: DatasetStats, settings: MissionSettings) -> str:
    if not settings.predictive_modeling:
        return "No advanced modeling available."
    regression = stats.advanced_stats.regression
    monte_carlo = stats.advanced_stats.monte_carlo
    if not regression and not monte_carlo:
        return "No advanced modeling available."

    lines = ["PREDICTIVE MODELING DATA (Use these to justify your strategy):"]
    if regression:
        lines.append(
            f'- Regression Trend: "{sanitize_for_prompt(regression.x_column, 50)}" vs '
            f'"{sanitize_for_prompt(regression.y_column, 50)}". Equation: {regression.equation} '
            f'(R²: {regression.r_squared:.3f}).'
        )
    if monte_carlo:
        lines.append(
            f'- Monte Carlo Risk Analysis ({sanitize_for_prompt(monte_carlo.column, 50)}): '
            f'P10 (Pessimistic): {monte_carlo.p10:.2f}, P50 (Expected): {monte_carlo.p50:.2f}, '
            f'P90 (Optimistic): {monte_carlo.p90:.2f}.'
        )
    return "\n".join(lines)


def build_analysis_prompt(
    stats: DatasetStats,
    sample_data: List[Dict[str, Any]],
    settings: MissionSettings
) -> str:
    if settings.force_persona:
        persona_directive = (
            f'CONTEXT OVERRIDE: The target persona is "{sanitize_for_prompt(settings.force_persona)}". '
            f'Adopt this viewpoint. Do not deduce a new one.'
        )
    else:
        persona_directive = (
            "Identify the specific JOB TITLE or PERSONA that would find this dataset most valuable "
            "(e.g. sales data -> 'Chief Revenue Officer')."
        )

    goal_directive = ""
    if settings.analysis_goal:
        goal_directive = (
            f'OBJECTIVE OVERRIDE: The user\'s goal is "{sanitize_for_prompt(settings.analysis_goal, 300)}". '
            f'All insights and actions must address it.'
        )

    if settings.enable_grounding:
        grounding_directive = "1. TARGET CHECK: Identify the real-world dataset this most likely is (name, source, domain)."
    else:
        grounding_directive = "1. TARGET CHECK: Deduce the context from internal data patterns only."

    depth_directive = (
        "Perform exhaustive analysis. Look for subtle correlations and edge cases."
        if settings.deep_scan else "Perform standard analysis."
    )

    columns = ", ".join(
        f"{sanitize_for_prompt(c.name, 40)} ({c.type.value}, Unique: {c.unique_count}, Missing: {c.missing_count})"
        for c in stats.column_profiles
    )
    insights = "\n".join(f"- {line}" for line in stats.narrative_insights) or "- none"

    return f"""Research the provided dataset to identify its real-world context.
{persona_directive}
{goal_directive}

Then act as an advisor to that persona. Use their professional vocabulary and focus on strategy relevant to their job.
{depth_directive}

DATA PROFILE:
Rows: {stats.row_count}
Columns: {columns}
Computed findings:
{insights}

{_advanced_stats_context(stats, settings)}

SAMPLE DATA:
{json.dumps(sample_data[:5], default=str)}

PROTOCOL:
{grounding_directive}
2. PERSONA: Deduce (or confirm) the target persona.
3. EXECUTIVE INSIGHTS: 3 high-level strategic insights (trends, risks, opportunities). Quote the modeling data if relevant.
4. ACTIONS: 3-5 concrete action items for the persona.
5. DASHBOARD: Suggest 3 charts.

VISUALIZATION RULES:
- No charts for columns with 1 unique value.
- No bar/pie charts for columns with > 50 unique values; use scatter instead.
- Prefer line charts for temporal data and bar charts for categorical comparisons.
- Only use column names listed above.

OUTPUT FORMAT (JSON ONLY):
{{
  "datasetName": "Official Dataset Name",
  "topic": "Domain",
  "userPersona": "The Target Persona",
  "problemType": "Classification | Regression | Clustering | Unknown",
  "targetVariableSuggestion": "target_col or null",
  "summary": "Brief briefing for the persona.",
  "cleaningSuggestions": ["..."],
  "executiveInsights": ["...", "...", "..."],
  "recommendedActions": ["...", "...", "..."],
  "groundingSources": [{{"title": "...", "uri": "https://..."}}],
  "suggestedCharts": [
    {{"id": "chart_1", "title": "Chart Title", "type": "bar | line | scatter | pie",
      "xAxisKey": "col_x", "dataKeys": ["col_y"], "description": "Why this view matters."}}
  ]
}}"""


def _valid_charts(raw_charts: Any, columns: set) -> List[ChartConfig]:
    """Keep only well-formed chart suggestions that reference real columns."""
    charts = []
    for raw in raw_charts or []:
        try:
            chart = ChartConfig.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Discarding malformed chart suggestion: {e.errors()[:1]}")
            continue
        if chart.x_axis_key in columns and all(k in columns for k in chart.data_keys):
            charts.append(chart)
        else:
            logger.debug(f"Discarding chart '{chart.id}' with unknown columns")
    return charts


def analyze_dataset(
    stats: DatasetStats,
    sample_data: List[Dict[str, Any]],
    settings: MissionSettings
) -> AIAnalysisResult:
    """
    Ask the model for persona, summary, insights, actions and chart
    suggestions. Falls back to the fixed degraded analysis on any failure.
    """
    if not ai_available():
        logger.info("No AI providers configured (set GROQ_API_KEY or GEMINI_API_KEY)")
        return fallback_analysis(settings)

    prompt = build_analysis_prompt(stats, sample_data, settings)
    text = _call_ai_with_fallback(
        prompt,
        "You are a top-tier data consultant. Reply with JSON only.",
        max_tokens=1500,
        temperature=0.4 if settings.deep_scan else 0.3
    )
    if not text:
        return fallback_analysis(settings)

    try:
        payload = extract_json(text)
        if not isinstance(payload, dict):
            raise ValueError("AI response is not a JSON object")
        columns = {c.name for c in stats.column_profiles}
        problem_type = payload.get("problemType")
        if problem_type not in PROBLEM_TYPES:
            problem_type = "Unknown"

        result = AIAnalysisResult.model_validate({
            "datasetName": payload.get("datasetName") or "Unknown Dataset",
            "topic": payload.get("topic") or "General Data",
            "userPersona": payload.get("userPersona") or settings.force_persona or "Data Analyst",
            "problemType": problem_type,
            "targetVariableSuggestion": payload.get("targetVariableSuggestion"),
            "summary": payload.get("summary") or "",
            "cleaningSuggestions": payload.get("cleaningSuggestions") or [],
            "suggestedCharts": _valid_charts(payload.get("suggestedCharts"), columns),
            "groundingSources": (payload.get("groundingSources") or []) if settings.enable_grounding else [],
            "executiveInsights": payload.get("executiveInsights") or DEFAULT_EXECUTIVE_INSIGHTS,
            "recommendedActions": payload.get("recommendedActions") or DEFAULT_RECOMMENDED_ACTIONS,
        })
    except (ValueError, ValidationError) as e:
        logger.warning(f"Dataset analysis failed, using fallback: {e}")
        return fallback_analysis(settings)

    result.initial_layout = build_initial_layout(result.suggested_charts)
    logger.info(f"Dataset analysis complete: persona={result.user_persona}, {len(result.suggested_charts)} charts")
    return result


def get_deep_insight(chart_title: str, chart_context: str, dataset_topic: str, data_summary: str) -> str:
    """Two-sentence observation plus one adjustment for a single chart."""
    if not ai_available():
        return NO_INSIGHT

    prompt = f"""CONTEXT: "{sanitize_for_prompt(dataset_topic, 100)}". {sanitize_for_prompt(data_summary, 500)}
CHART: "{sanitize_for_prompt(chart_title, 100)}" shows {sanitize_for_prompt(chart_context, 1500)}.
If the context implies technical expertise, use precise technical vocabulary.
If it implies business leadership, use strategic, impact-focused language.

TASK: Provide a concise observation (max 2 sentences) and one immediate adjustment."""

    result = _call_ai_with_fallback(
        prompt,
        "Senior strategy consultant. Concise answers only.",
        max_tokens=200
    )
    return result.strip() if result else NO_INSIGHT


def process_dashboard_command(
    current_layout: List[DashboardElement],
    user_command: str,
    column_info: str,
    dataset_context: str
) -> CommandResponse:
    """
    Let the model answer a question or rewrite the dashboard layout.
    The layout it returns is validated before it reaches the chart preparer.
    """
    if not ai_available():
        return fallback_command_response()

    layout_json = json.dumps([e.model_dump(by_alias=True, exclude_none=True) for e in current_layout])
    prompt = f"""Interpret this request: "{sanitize_for_prompt(user_command, 500)}".
- If it is a QUESTION, answer it clearly from the context.
- If it is a COMMAND (e.g. "Add a metric for Cost"), modify the dashboard layout.
State what you did in the systemLog block.

CONTEXT:
- Dataset: {sanitize_for_prompt(dataset_context, 300)}
- Available Columns: {sanitize_for_prompt(column_info, 2000)}
- Current Dashboard Layout: {layout_json}

Element types: header, text (use "content"), metric (use "metricColumn", "metricOperation" in sum/mean/count/max/min, "metricLabel"), chart (use "chartConfig" with id, title, type bar/line/scatter/pie, xAxisKey, dataKeys, description).

OUTPUT FORMAT (JSON ONLY):
{{
  "chatResponse": "Direct answer or confirmation.",
  "systemLog": {{"actionTaken": "...", "scope": "...", "newAnalysisState": "..."}},
  "updatedLayout": [ ... ] or null
}}"""

    text = _call_ai_with_fallback(
        prompt,
        "You are the lead analyst of a dashboard system. Reply with JSON only.",
        max_tokens=2000,
        temperature=0.2
    )
    if not text:
        return fallback_command_response()

    try:
        response = CommandResponse.model_validate(extract_json(text))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Dashboard command failed, using fallback: {e}")
        return fallback_command_response()

    logger.info(f"Dashboard command processed: {response.system_log.action_taken}")
    return response
