class InvalidConfigurationError(ValueError):
    """Generation parameters failed validation."""
    def __init__(self, message="Invalid dataset configuration."):
        super().__init__(message)


class InvalidGridSizeError(InvalidConfigurationError):
    """Grid has no interior cells."""
    def __init__(self, message="n must be >= 3"):
        super().__init__(message)
