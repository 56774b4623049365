"""
Exception hierarchy for stl_cavity.

Load and write failures surface as exceptions inside the package and are
converted to boolean results at the public engine boundary.
"""


class StlMeshError(Exception):
    """
    Base exception for all mesh engine failures.

    Carries an error code for programmatic handling and a details
    dictionary with additional context.
    """
    def __init__(self, message: str, error_code: str = None, details: dict = None):
        """
        Initialize mesh engine error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.error_code = error_code or "MESH_ERROR"
        self.details = details or {}
        self.message = message

    def __str__(self):
        if self.details:
            return f"{self.message} (Code: {self.error_code}, Details: {self.details})"
        return f"{self.message} (Code: {self.error_code})"


class StlReadError(StlMeshError):
    """
    Exception for STL load failures.

    Raised when an STL file cannot be opened or decoded.
    """
    def __init__(self, message: str, geometry_file: str = None, **kwargs):
        kwargs.setdefault("error_code", "STL_READ_ERROR")
        super().__init__(message, **kwargs)
        self.geometry_file = geometry_file
        if geometry_file:
            self.details["geometry_file"] = geometry_file


class StlFormatError(StlReadError):
    """
    Exception for malformed STL content.

    Raised for a malformed text facet, a truncated binary stream, an
    implausible binary triangle count, or a file without any facet.
    """
    def __init__(self, message: str, geometry_file: str = None, line_number: int = None, **kwargs):
        super().__init__(message, geometry_file=geometry_file, error_code="STL_FORMAT_ERROR", **kwargs)
        self.line_number = line_number
        if line_number is not None:
            self.details["line_number"] = line_number


class StlWriteError(StlMeshError):
    """Exception for STL destinations that cannot be written."""
    def __init__(self, message: str, output_file: str = None, **kwargs):
        super().__init__(message, error_code="STL_WRITE_ERROR", **kwargs)
        self.output_file = output_file
        if output_file:
            self.details["output_file"] = output_file


class ConfigurationError(StlMeshError):
    """
    Exception for configuration file and parameter errors.

    Raised when configuration files are unreadable, are not valid JSON,
    or contain out-of-range parameters.
    """
    def __init__(self, message: str, config_file: str = None, invalid_parameters: list = None, **kwargs):
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)
        self.config_file = config_file
        self.invalid_parameters = invalid_parameters or []
        if config_file:
            self.details["config_file"] = config_file
        if invalid_parameters:
            self.details["invalid_parameters"] = invalid_parameters


# Convenience functions for common error scenarios

def raise_format_error(message: str, geometry_file: str = None, line_number: int = None, **kwargs):
    """Raise a StlFormatError with standardized formatting."""
    raise StlFormatError(message, geometry_file=geometry_file, line_number=line_number, **kwargs)


def raise_configuration_error(message: str, config_file: str = None, parameters: list = None, **kwargs):
    """Raise a ConfigurationError naming the offending parameters."""
    raise ConfigurationError(message, config_file=config_file, invalid_parameters=parameters, **kwargs)
