"""
Error message constants and utilities for user-friendly error handling.
"""
from typing import Dict, Optional

# Error codes
class ErrorCodes:
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    FILE_EMPTY = "FILE_EMPTY"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    PARSE_ERROR = "PARSE_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    DATASET_NOT_FOUND = "DATASET_NOT_FOUND"
    INVALID_CHART = "INVALID_CHART"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    ErrorCodes.FILE_TOO_LARGE: {
        "message": "The uploaded file is too large",
        "detail": "The file exceeds the configured upload size limit. All statistics are computed in memory.",
        "suggestion": "Split the file into smaller parts, or export only the columns you need."
    },
    ErrorCodes.FILE_EMPTY: {
        "message": "Empty dataset",
        "detail": "No usable rows were found. The file needs a header line followed by at least one row with the same number of fields.",
        "suggestion": "Check that the first line holds the column names and that data rows use commas as separators."
    },
    ErrorCodes.INVALID_FILE_TYPE: {
        "message": "A CSV file is required",
        "detail": "Only comma-separated text files (.csv) can be analyzed.",
        "suggestion": "Export your spreadsheet with 'Save As' / 'Download as CSV' and upload it again."
    },
    ErrorCodes.PARSE_ERROR: {
        "message": "The file could not be read",
        "detail": "The file contents could not be decoded or split into rows.",
        "suggestion": "Save the file again as UTF-8 CSV and make sure column names contain no control characters."
    },
    ErrorCodes.PROCESSING_ERROR: {
        "message": "Something went wrong while analyzing the data",
        "detail": "The dataset was parsed but the analysis could not be completed.",
        "suggestion": "Check that the file has headers in the first row and that each row has the same number of fields."
    },
    ErrorCodes.DATASET_NOT_FOUND: {
        "message": "Dataset not found",
        "detail": "The dataset is no longer available. Uploaded datasets are kept in memory for a limited time only.",
        "suggestion": "Upload the file again to start a new session."
    },
    ErrorCodes.INVALID_CHART: {
        "message": "The chart configuration refers to unknown columns",
        "detail": "The x-axis or value columns are not part of this dataset.",
        "suggestion": "Pick columns from the dataset profile and try again."
    },
    ErrorCodes.RATE_LIMIT_EXCEEDED: {
        "message": "Too many requests",
        "detail": "Uploads are rate limited to keep the service responsive.",
        "suggestion": "Wait about a minute and try again."
    },
    ErrorCodes.TIMEOUT: {
        "message": "This is taking longer than expected",
        "detail": "The request did not finish within the configured timeout.",
        "suggestion": "Try a smaller sample of your data, for example the first few thousand rows."
    },
    ErrorCodes.UNKNOWN_ERROR: {
        "message": "Something unexpected happened",
        "detail": "We encountered an issue we weren't expecting.",
        "suggestion": "Give it another try in a moment. If the problem keeps happening, try a different file."
    }
}

def get_error_response(error_code: str, additional_detail: Optional[str] = None) -> Dict[str, str]:
    """
    Get user-friendly error response for an error code.

    Args:
        error_code: One of the ErrorCodes constants
        additional_detail: Optional additional detail to append

    Returns:
        Dictionary with code, message, detail, and suggestion
    """
    error_info = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCodes.UNKNOWN_ERROR])

    response = {
        "code": error_code,
        "message": error_info["message"],
        "detail": error_info["detail"],
        "suggestion": error_info["suggestion"]
    }

    if additional_detail:
        response["detail"] = f"{response['detail']} {additional_detail}"

    return response
