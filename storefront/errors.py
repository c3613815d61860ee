"""Errors shared by the storefront services."""


class NotFoundError(LookupError):
    """The requested entity does not exist."""

    def __init__(self, message: str = "entity not found") -> None:
        super().__init__(message)


class InvalidParameterError(ValueError):
    """A request carried a parameter outside its allowed range."""

    def __init__(self, message: str = "invalid parameter") -> None:
        super().__init__(message)