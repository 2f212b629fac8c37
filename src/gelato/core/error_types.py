from __future__ import annotations

from typing import Final

# Typed errors let callers branch without parsing messages.
# Grow this list only when a new type is actually emitted.
KNOWN_ERROR_TYPES: Final[set[str]] = {
    "BACKEND_FAILED",
    "INVALID_ARGUMENT",
    "NOT_FOUND",
    "TOOL_MISSING",
    "TRANSCRIPTION_UNAVAILABLE",
}


def assert_known_error_type(error_type: str) -> None:
    if error_type not in KNOWN_ERROR_TYPES:
        raise ValueError(f"Unknown error type: {error_type!r}. Add it to gelato.core.error_types.KNOWN_ERROR_TYPES.")
