from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Any, Dict, Union, Literal

CellValue = Union[bool, int, float, str, None]
Row = Dict[str, CellValue]

ChartType = Literal['bar', 'line', 'scatter', 'pie']
MetricOperation = Literal['sum', 'mean', 'count', 'max', 'min']


class ColumnType(str, Enum):
    NUMERIC = 'Numeric'
    CATEGORICAL = 'Categorical'
    TEXT = 'Text'
    DATE = 'Date'
    UNKNOWN = 'Unknown'


class SemanticType(str, Enum):
    ID = 'ID'
    CURRENCY = 'Currency'
    TEMPORAL = 'Temporal'
    GEOGRAPHIC = 'Geographic'
    GENERAL = 'General'


class ColumnProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: ColumnType
    semantic_type: SemanticType
    missing_count: int
    unique_count: int
    example_values: List[str]
    min: Optional[float] = None  # numeric only
    max: Optional[float] = None
    mean: Optional[float] = None
    std: Optional[float] = None  # population std


class TrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class RegressionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    x_column: str
    y_column: str
    slope: float
    intercept: float
    r_squared: float
    equation: str
    trendline: List[TrendPoint]


class MonteCarloResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    p10: float
    p50: float
    p90: float
    iterations: int
    mean: float
    std: float


class AdvancedStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    regression: Optional[RegressionResult] = None
    monte_carlo: Optional[MonteCarloResult] = None


class DatasetStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_count: int
    column_profiles: List[ColumnProfile]
    outliers: List[Dict[str, Any]]
    narrative_insights: List[str]
    advanced_stats: AdvancedStats = AdvancedStats()


class ParseReport(BaseModel):
    header: List[str]
    rows: List[Dict[str, Any]]
    dropped_rows: int = 0  # ragged lines skipped by the parser


class ChartConfig(BaseModel):
    # The narrative collaborator speaks camelCase, so both spellings are accepted
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    type: ChartType
    x_axis_key: str = Field(alias='xAxisKey')
    data_keys: List[str] = Field(default_factory=list, alias='dataKeys')
    description: str = ''


class DashboardElement(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: Literal['header', 'metric', 'chart', 'text']
    w: int = 1  # column span
    title: Optional[str] = None
    content: Optional[str] = None
    chart_config: Optional[ChartConfig] = Field(default=None, alias='chartConfig')
    metric_column: Optional[str] = Field(default=None, alias='metricColumn')
    metric_operation: Optional[MetricOperation] = Field(default=None, alias='metricOperation')
    metric_label: Optional[str] = Field(default=None, alias='metricLabel')


class GroundingSource(BaseModel):
    title: str
    uri: str


class MissionSettings(BaseModel):
    force_persona: Optional[str] = None
    analysis_goal: Optional[str] = None
    enable_grounding: bool = True
    deep_scan: bool = False
    predictive_modeling: bool = True


class AIAnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dataset_name: str = Field(alias='datasetName')
    topic: str
    user_persona: str = Field(alias='userPersona')
    problem_type: Literal['Classification', 'Regression', 'Clustering', 'Unknown'] = Field(
        default='Unknown', alias='problemType'
    )
    target_variable_suggestion: Optional[str] = Field(default=None, alias='targetVariableSuggestion')
    summary: str
    cleaning_suggestions: List[str] = Field(default_factory=list, alias='cleaningSuggestions')
    suggested_charts: List[ChartConfig] = Field(default_factory=list, alias='suggestedCharts')
    grounding_sources: List[GroundingSource] = Field(default_factory=list, alias='groundingSources')
    executive_insights: List[str] = Field(default_factory=list, alias='executiveInsights')
    recommended_actions: List[str] = Field(default_factory=list, alias='recommendedActions')
    degraded: bool = False  # True when the fixed fallback was returned
    initial_layout: List[DashboardElement] = Field(default_factory=list)


class SystemLog(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action_taken: str = Field(alias='actionTaken')
    scope: str
    new_analysis_state: str = Field(alias='newAnalysisState')


class CommandResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_response: str = Field(alias='chatResponse')
    system_log: SystemLog = Field(alias='systemLog')
    updated_layout: Optional[List[DashboardElement]] = Field(default=None, alias='updatedLayout')


class UploadResult(BaseModel):
    dataset_id: str
    filename: str
    stats: DatasetStats
    dataset: List[Dict[str, Any]]
    dropped_rows: int = 0


class PreparedChart(BaseModel):
    chart_id: str
    chart_type: ChartType
    series: List[Dict[str, Any]]


class MetricRequest(BaseModel):
    column: str
    operation: MetricOperation


class MetricResult(BaseModel):
    column: str
    operation: MetricOperation
    value: str


class CommandRequest(BaseModel):
    command: str = Field(min_length=1, max_length=2000)
    layout: List[DashboardElement] = Field(default_factory=list)


class ChartInsightRequest(BaseModel):
    chart_title: str
    chart_context: str
    dataset_topic: str = 'General Data'
    data_summary: str = ''
