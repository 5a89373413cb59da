class MultipartError(Exception):
    """Raised when a request body cannot be split into parts."""
