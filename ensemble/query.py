"""
JSONPath selection over fan-out results.

Used by the CLI's ``--query`` option to pick values out of the
serialized result list, e.g. ``$[*].data.tools[*].name``.
"""

from __future__ import annotations

from typing import Any

from jsonpath_ng import parse as parse_jsonpath
from jsonpath_ng.exceptions import JsonPathParserError


class QueryError(ValueError):
    """Raised when a JSONPath expression cannot be parsed or evaluated."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")


def select(data: Any, path: str) -> list[Any]:
    """
    Return the values matched by a JSONPath expression.

    Args:
        data: JSON-compatible data (dicts, lists, scalars)
        path: JSONPath expression

    Returns:
        Matched values in document order (empty if nothing matches)

    Raises:
        QueryError: If the expression is invalid
    """
    try:
        jsonpath_expr = parse_jsonpath(path)
    except JsonPathParserError as e:
        raise QueryError(path, f"Invalid JSONPath expression ({e})") from e
    except Exception as e:
        raise QueryError(path, f"Failed to parse JSONPath ({type(e).__name__}: {e})") from e

    try:
        return [match.value for match in jsonpath_expr.find(data)]
    except Exception as e:
        raise QueryError(path, f"Failed to evaluate JSONPath ({type(e).__name__}: {e})") from e

