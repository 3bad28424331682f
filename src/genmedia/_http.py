"""HTTP status codes and google.rpc status mappings used for classification."""

from __future__ import annotations

# Statuses that identify a bad request outright.
PERMANENT_STATUS_CODES: frozenset[int] = frozenset({400, 401, 403, 422})

# Statuses worth another attempt after a pause.
TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 502, 503})

NOT_FOUND = 404
TOO_MANY_REQUESTS = 429

# google.rpc status names as surfaced by the google-genai SDK's ``status`` field.
RPC_STATUS_TO_HTTP: dict[str, int] = {
    "INVALID_ARGUMENT": 400,
    "FAILED_PRECONDITION": 400,
    "UNAUTHENTICATED": 401,
    "PERMISSION_DENIED": 403,
    "NOT_FOUND": 404,
    "RESOURCE_EXHAUSTED": 429,
    "INTERNAL": 500,
    "UNAVAILABLE": 503,
    "DEADLINE_EXCEEDED": 504,
}

# Numeric google.rpc codes, as found in a long-running operation's ``error.code``.
RPC_CODE_TO_HTTP: dict[int, int] = {
    3: 400,
    4: 504,
    5: 404,
    7: 403,
    8: 429,
    9: 400,
    13: 500,
    14: 503,
    16: 401,
}


def http_status_for(code: int | None) -> int | None:
    """Map an HTTP status or numeric google.rpc code to an HTTP status."""
    if not isinstance(code, int):
        return None
    if 100 <= code <= 599:
        return code
    return RPC_CODE_TO_HTTP.get(code)
