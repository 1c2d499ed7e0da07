import logging
import re
from pathlib import Path
from typing import List, Tuple
from fastapi import UploadFile, HTTPException
from app.core.config import get_settings
from app.core.errors import ErrorCodes, get_error_response
from app.core.sanitization import sanitize_filename, validate_column_name
from app.core.performance import track_performance
from app.core.schemas import ParseReport, Row
from app.core.values import coerce_number

logger = logging.getLogger(__name__)
settings = get_settings()

LINE_SPLIT = re.compile(r'\r?\n')

# Allowed file extensions
ALLOWED_EXTENSIONS = {'.csv'}

# MIME type mapping for validation
MIME_TYPE_MAP = {
    'text/csv': '.csv',
    'application/csv': '.csv',
    'text/plain': '.csv',
    'application/vnd.ms-excel': '.csv',  # Windows browsers label CSV this way
}


def _split_fields(line: str) -> List[str]:
    """
    Split a line on commas, trim each field and strip one layer of
    surrounding double quotes. Embedded commas inside quotes are not supported.
    """
    fields = []
    for field in line.split(','):
        field = field.strip()
        if field.startswith('"'):
            field = field[1:]
        if field.endswith('"'):
            field = field[:-1]
        fields.append(field)
    return fields


def parse_csv_report(text: str) -> ParseReport:
    """
    Parse CSV text into typed rows and report how many ragged lines
    (field count different from the header) were skipped.
    """
    lines = [line for line in LINE_SPLIT.split(text) if line.strip() != '']
    if not lines:
        return ParseReport(header=[], rows=[], dropped_rows=0)

    header = _split_fields(lines[0])
    rows: List[Row] = []
    dropped = 0

    for line in lines[1:]:
        values = _split_fields(line)
        if len(values) != len(header):
            dropped += 1
            continue
        rows.append({name: coerce_number(value) for name, value in zip(header, values)})

    if dropped:
        logger.debug(f"Skipped {dropped} rows whose field count does not match the header ({len(header)})")

    return ParseReport(header=header, rows=rows, dropped_rows=dropped)


def parse_csv(text: str) -> List[Row]:
    """
    Parse CSV text into a list of rows keyed by header name.

    Ragged rows are silently dropped. An empty list means there was nothing
    to ingest and callers should treat it as an empty dataset.
    """
    return parse_csv_report(text).rows


def validate_file_extension(filename: str) -> str:
    """
    Validate and sanitize file extension.
    Returns the extension if valid, raises HTTPException otherwise.
    """
    if not filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    # Use pathlib for safe extension extraction
    file_ext = Path(filename).suffix.lower()

    if not file_ext:
        raise HTTPException(
            status_code=400,
            detail=get_error_response(ErrorCodes.INVALID_FILE_TYPE, "File must have an extension.")
        )

    if file_ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=get_error_response(
                ErrorCodes.INVALID_FILE_TYPE,
                f"Unsupported file format: {file_ext}. Allowed formats: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
            )
        )

    return file_ext


def validate_mime_type(content_type: str, file_ext: str) -> bool:
    """
    Validate MIME type against the file extension.
    Raises HTTPException if the MIME type is dangerous; mismatches only warn.
    """
    if not content_type:
        # If no content type provided, rely on extension validation
        return True

    expected_ext = MIME_TYPE_MAP.get(content_type.lower())
    if expected_ext is None:
        logger.warning(f"MIME type {content_type} doesn't match extension {file_ext}")

    dangerous_types = [
        'application/x-executable',
        'application/x-sharedlib',
        'application/x-msdownload',
        'text/html',
        'application/javascript',
    ]
    if content_type.lower() in dangerous_types:
        raise HTTPException(
            status_code=400,
            detail=f"File type '{content_type}' is not allowed. Only CSV files are supported."
        )
    return True


def decode_contents(contents: bytes) -> str:
    """Decode uploaded bytes as UTF-8 (BOM tolerated), falling back to latin-1."""
    try:
        return contents.decode('utf-8-sig')
    except UnicodeDecodeError:
        logger.info("File is not valid UTF-8, decoding as latin-1")
        return contents.decode('latin1')


@track_performance("read_upload")
async def read_upload(file: UploadFile) -> Tuple[bytes, str]:
    """
    Read an uploaded CSV file, returning the raw bytes and decoded text.
    Validates file extension and MIME type before decoding.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    file_ext = validate_file_extension(file.filename)
    validate_mime_type(file.content_type, file_ext)

    contents = await file.read()

    if len(contents) == 0:
        raise HTTPException(status_code=400, detail=get_error_response(ErrorCodes.FILE_EMPTY))

    text = decode_contents(contents)
    logger.info(f"Read upload: {sanitize_filename(file.filename)}, {len(contents) / 1024:.2f}KB")
    return contents, text


def validate_report(report: ParseReport) -> None:
    """
    Validate that the parsed content is reasonable and safe.

    Raises:
        HTTPException: If content validation fails
    """
    if len(report.rows) > settings.max_file_rows:
        raise HTTPException(
            status_code=400,
            detail=f"File contains too many rows ({len(report.rows):,}). Maximum allowed: {settings.max_file_rows:,} rows."
        )

    if len(report.header) > settings.max_file_columns:
        raise HTTPException(
            status_code=400,
            detail=f"File contains too many columns ({len(report.header)}). Maximum allowed: {settings.max_file_columns} columns."
        )

    for name in report.header:
        if not validate_column_name(name):
            raise HTTPException(
                status_code=400,
                detail=get_error_response(
                    ErrorCodes.PARSE_ERROR,
                    f"Invalid column name: '{name}'. Column names must not contain path traversal or control characters."
                )
            )

    for row in report.rows:
        for name, value in row.items():
            if isinstance(value, str) and len(value) > settings.max_cell_size_bytes:
                raise HTTPException(
                    status_code=400,
                    detail=f"File contains extremely large text values in column '{name}'. Maximum allowed: {settings.max_cell_size_bytes} bytes per cell."
                )
