import logging
from fastapi import APIRouter, UploadFile, File, HTTPException, Request
from app.core.rate_limit import limiter, per_minute_limit
from app.services.parser import parse_csv_report, read_upload, validate_report
from app.services.aggregator import profile_dataset
from app.services.visuals import prepare_visual_data
from app.services.calculator import calculate_metric
from app.core.schemas import (
    ChartConfig,
    DatasetStats,
    MetricRequest,
    MetricResult,
    PreparedChart,
    UploadResult,
)
from app.core.errors import ErrorCodes, get_error_response
from app.core.config import get_settings
from app.core.sanitization import sanitize_filename, sanitize_for_logging
from app.core.cache import CachedDataset, get_dataset_cache, get_stats_cache, generate_dataset_id

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter()


def api_error(status_code: int, code: str, request: Request, detail: str = None) -> HTTPException:
    """HTTPException with the structured error body and correlation id."""
    error_info = get_error_response(code, detail)
    error_info['correlation_id'] = getattr(request.state, 'correlation_id', 'unknown')
    return HTTPException(status_code=status_code, detail=error_info)


def load_dataset(dataset_id: str, request: Request) -> CachedDataset:
    dataset = get_dataset_cache().get(dataset_id)
    if dataset is None:
        logger.info(f"Dataset not found or expired: {sanitize_for_logging(dataset_id, 64)}")
        raise api_error(404, ErrorCodes.DATASET_NOT_FOUND, request)
    return dataset


def load_stats(dataset_id: str, dataset: CachedDataset) -> DatasetStats:
    """Statistics snapshot for a cached dataset, computed once per dataset."""
    stats_cache = get_stats_cache()
    stats = stats_cache.get(dataset_id)
    if stats is None:
        stats = profile_dataset(dataset.rows)
        stats_cache.set(dataset_id, stats)
    return stats


@router.get("/health")
async def health_check():
    return {"status": "ok"}


async def _check_file_size_streaming(file: UploadFile) -> int:
    """
    Size of the upload in bytes, read in chunks so an oversized file is
    rejected before it is held in memory.
    """
    file_size = 0
    chunk_size = 1024 * 1024

    await file.seek(0)
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        file_size += len(chunk)
        if file_size > settings.max_file_size_bytes:
            break

    await file.seek(0)
    return file_size


async def _process_upload(file: UploadFile, request: Request) -> UploadResult:
    """Parse, cache and profile one upload (no rate limiting here)."""
    file_size = await _check_file_size_streaming(file)
    if file_size > settings.max_file_size_bytes:
        raise api_error(
            413, ErrorCodes.FILE_TOO_LARGE, request,
            f"Maximum size is {settings.max_file_size_mb}MB. Your file is {file_size / 1024 / 1024:.2f}MB"
        )
    if file_size == 0:
        raise api_error(400, ErrorCodes.FILE_EMPTY, request)

    safe_filename = sanitize_filename(file.filename) if file.filename else 'unknown'
    logger.info(f"Processing file: {sanitize_for_logging(safe_filename)}, size: {file_size / 1024:.2f}KB")

    contents, text = await read_upload(file)
    dataset_id = generate_dataset_id(contents, safe_filename)
    dataset_cache = get_dataset_cache()

    dataset = dataset_cache.get(dataset_id)
    if dataset is not None:
        logger.info(f"Using cached dataset: {sanitize_for_logging(safe_filename)}")
    else:
        report = parse_csv_report(text)
        validate_report(report)
        if not report.rows:
            raise api_error(400, ErrorCodes.FILE_EMPTY, request)
        dataset = CachedDataset(
            filename=safe_filename,
            header=report.header,
            rows=report.rows,
            dropped_rows=report.dropped_rows
        )
        dataset_cache.set(dataset_id, dataset)

    stats = load_stats(dataset_id, dataset)

    if len(dataset.rows) > settings.max_dataset_rows:
        logger.info(f"Dataset truncated from {len(dataset.rows)} to {settings.max_dataset_rows} rows for response")

    logger.info(
        f"Successfully processed file: {sanitize_for_logging(safe_filename)}, "
        f"{stats.row_count} rows, {len(stats.narrative_insights)} insights"
    )

    return UploadResult(
        dataset_id=dataset_id,
        filename=safe_filename,
        stats=stats,
        dataset=dataset.rows[:settings.max_dataset_rows],
        dropped_rows=dataset.dropped_rows
    )


@router.post("/upload", response_model=UploadResult)
@limiter.limit(per_minute_limit)
async def upload_file(request: Request, file: UploadFile = File(...)):
    """
    Upload a CSV file and get its statistics snapshot.

    The returned dataset_id addresses the parsed rows for chart, metric and
    analysis requests while the dataset stays cached. Rate limited per IP.
    """
    try:
        return await _process_upload(file, request)
    except HTTPException:
        raise
    except Exception as e:
        safe_filename = sanitize_for_logging(sanitize_filename(file.filename) if file.filename else 'unknown')
        logger.error(f"Unexpected error processing file {safe_filename}: {e}", exc_info=True)
        raise api_error(500, ErrorCodes.UNKNOWN_ERROR, request)


@router.get("/datasets/{dataset_id}/stats", response_model=DatasetStats)
async def get_dataset_stats(dataset_id: str, request: Request):
    dataset = load_dataset(dataset_id, request)
    return load_stats(dataset_id, dataset)


@router.post("/datasets/{dataset_id}/charts", response_model=PreparedChart)
async def prepare_chart(dataset_id: str, config: ChartConfig, request: Request):
    """Axis-ready series for one chart configuration."""
    dataset = load_dataset(dataset_id, request)

    unknown = [key for key in [config.x_axis_key, *config.data_keys] if key not in dataset.header]
    if unknown:
        raise api_error(
            400, ErrorCodes.INVALID_CHART, request,
            f"Unknown columns: {', '.join(sanitize_for_logging(k, 100) for k in unknown)}."
        )

    try:
        series = prepare_visual_data(dataset.rows, config)
    except Exception as e:
        logger.error(f"Chart preparation failed for '{sanitize_for_logging(config.id, 100)}': {e}", exc_info=True)
        raise api_error(500, ErrorCodes.PROCESSING_ERROR, request)

    return PreparedChart(chart_id=config.id, chart_type=config.type, series=series)


@router.post("/datasets/{dataset_id}/metric", response_model=MetricResult)
async def compute_metric(dataset_id: str, metric: MetricRequest, request: Request):
    """Single-value reduction for a metric tile; 'N/A' when nothing is numeric."""
    dataset = load_dataset(dataset_id, request)
    value = calculate_metric(dataset.rows, metric.column, metric.operation)
    return MetricResult(column=metric.column, operation=metric.operation, value=value)
