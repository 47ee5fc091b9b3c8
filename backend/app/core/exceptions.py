"""
Custom Exceptions for the Model Export API
==========================================

Every expected failure of the export store is one of these. The API layer
turns them into the standard failure envelope:

    {"success": false, "errors": [{"code": 4001, "message": "..."}]}

Usage:
    from app.core.exceptions import ExportNotFoundError

    if not export:
        raise ExportNotFoundError()
"""

from typing import Any, Dict


INTERNAL_ERROR_CODE = 7000
INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class ModelExportError(Exception):
    """Base exception for all model export errors"""

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR_CODE,
        status_code: int = 500
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
        }


# ============================================
# Validation Errors (400-type)
# ============================================

class InvalidArgumentError(ModelExportError):
    """Malformed input: bad id, non-positive player id, empty payload"""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, code=400, status_code=400)


class InvalidExportIdError(InvalidArgumentError):
    """Export id is not exactly 12 digits"""

    def __init__(self):
        super().__init__("ID must be a 12-digit number")


class InvalidPlayerIdError(InvalidArgumentError):
    """Player id is not a positive integer"""

    def __init__(self):
        super().__init__("Invalid player_user_id")


# ============================================
# Conflict Errors
# ============================================

class QuotaExceededError(ModelExportError):
    """Player already owns the maximum number of exports"""

    def __init__(self, limit: int = 5):
        super().__init__(
            f"Player cannot have more than {limit} model exports",
            code=4001,
            status_code=400
        )
        self.limit = limit


class DuplicateExportIdError(ModelExportError):
    """An export with this id already exists"""

    def __init__(self, export_id: str = ""):
        super().__init__(
            "Model with this ID already exists",
            code=4002,
            status_code=400
        )
        self.export_id = export_id


# ============================================
# Resource Errors (404-type)
# ============================================

class ExportNotFoundError(ModelExportError):
    """No export matches the id (and owner, when given)"""

    def __init__(self, message: str = "Model not found"):
        super().__init__(message, code=4041, status_code=404)


# ============================================
# Helper function for API responses
# ============================================

def error_body(code: int, message: str) -> Dict[str, Any]:
    """Failure envelope for a single error"""
    return {
        "success": False,
        "errors": [{"code": code, "message": message}]
    }


def error_response(error: ModelExportError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return error_body(error.code, error.message)
