from __future__ import annotations


class PedigreeError(Exception):
    pass


class EmptyInputError(PedigreeError, ValueError):
    pass


class UpstreamFailureError(PedigreeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoNodesFoundError(PedigreeError, ValueError):
    def __init__(self, message: str = "No nodes found in the generated notation") -> None:
        super().__init__(message)
