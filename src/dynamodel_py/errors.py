from __future__ import annotations


class DynamodelError(Exception):
    pass


class InvalidParametersError(DynamodelError):
    pass


class InvalidCursorError(InvalidParametersError):
    pass


class ValidationError(DynamodelError):
    def __init__(self, message: str, *, item: object | None = None) -> None:
        super().__init__(message)
        self.item = item
