from typing import Optional

from models.page_model import ErrorKind


class BaseAppException(Exception):
    """Base class for all app-specific exceptions."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

class LaunchError(BaseAppException):
    """Browser engine could not be started. Fatal for the whole run."""
    def __init__(self, message: str = "Failed to launch browser. Is Chromium installed?"):
        super().__init__(message)

class AcquireError(BaseAppException):
    """A pool slot was taken but the tab could not be opened or configured."""
    def __init__(self, message: str = "Failed to open browser tab"):
        super().__init__(message)

class NavigationError(BaseAppException):
    """Navigation failed; kind is the coarse classification of the engine error."""
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message, {"kind": kind.value})
        self.kind = kind

class ExtractionError(BaseAppException):
    """Page content could not be read or parsed."""
    def __init__(self, message: str = "Failed to get page content"):
        super().__init__(message)

class BrowserPoolConfigError(BaseAppException, ValueError):
    """Invalid pool configuration (limit outside the allowed range)."""
    def __init__(self, message: str):
        super().__init__(message)
