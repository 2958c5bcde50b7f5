class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ValidationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class InternalError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 500)


class CacheConfigurationError(CustomBaseError):
    """Cache wrapper built without a cache store (programming error, raised at wrap time)"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 500)
