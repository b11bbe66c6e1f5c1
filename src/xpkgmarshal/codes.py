"""Error code constants for the marshaling pipeline.

Every failure raised by the pipeline carries one of these codes so callers
can branch on the kind of failure instead of parsing messages.
"""

from enum import Enum


class MarshalCode(str, Enum):
    """Marshal failure codes."""

    # Acquisition
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT_PATH = "INVALID_INPUT_PATH"
    DIGEST_UNAVAILABLE = "DIGEST_UNAVAILABLE"

    # Decoding and linting
    PARSE_FAILURE = "PARSE_FAILURE"
    NOT_EXACTLY_ONE_META = "NOT_EXACTLY_ONE_META"
    LINT_FAILURE = "LINT_FAILURE"

    # Finalization
    DEPENDENCY_CONVERSION_FAILURE = "DEPENDENCY_CONVERSION_FAILURE"
    UNKNOWN_OBJECT_TYPE = "UNKNOWN_OBJECT_TYPE"
    SCHEMA_CONVERSION_FAILURE = "SCHEMA_CONVERSION_FAILURE"
    CONFLICTING_SCHEMA = "CONFLICTING_SCHEMA"


class MarshalError(Exception):
    """Exception raised when a marshal call fails at any stage."""
    def __init__(self, code: MarshalCode, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code.value}] {message}")
