"""Exceptions raised by the entity store adapters."""


class StoreError(Exception):
    """The document store failed, was unreachable, or missed its deadline."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
