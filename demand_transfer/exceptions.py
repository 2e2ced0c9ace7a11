class DemandTransferError(Exception):
    """Base exception for Demand Transfer errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Demand Transfer tool"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(DemandTransferError):
    """Exception raised for dataset configuration errors (missing columns, no data)."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class ValidationError(DemandTransferError):
    """Exception raised when caller input cannot be staged."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(DemandTransferError):
    """Exception raised when a requested DFU is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class TransferError(DemandTransferError):
    """Exception raised for transfer execution errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Transfer error"
        super().__init__(message, code, details)


class SpreadsheetError(DemandTransferError):
    """Exception raised when a workbook cannot be read or written."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Spreadsheet error"
        super().__init__(message, code, details)
