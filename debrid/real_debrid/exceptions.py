from ..base import DebridProviderError

class RealDebridError(DebridProviderError):
    """Base exception class for Real-Debrid specific errors"""
    pass

class RealDebridAPIError(RealDebridError):
    """Exception raised when the Real-Debrid API returns an error"""
    def __init__(self, message, status_code=None, error_code=None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code

class RealDebridAuthError(RealDebridError):
    """Exception raised when there are authentication issues"""
    pass
