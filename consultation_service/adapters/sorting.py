"""ORDER BY construction shared by the SQL-backed adapters.

Sort properties come straight from the query string, so only properties that
pass ``SortOrder.is_safe`` are ever interpolated into SQL; anything else is
dropped with a warning.
"""

import logging
from typing import Callable, Optional

from consultation_service.domain.pagination import Pageable

logger = logging.getLogger(__name__)


def build_order_by(
    pageable: Pageable,
    id_column: str,
    json_expression: Callable[[str], str],
    numeric_expression: Optional[Callable[[str], str]] = None
) -> str:
    """Build an ORDER BY clause for a pageable request.

    Parameters:
        pageable: Pagination request carrying the sort orders
        id_column: Column holding the record identifier
        json_expression: Maps a property name to the SQL expression that
            extracts it from the JSON payload as text
        numeric_expression: Maps a property name to an expression that is the
            property's numeric value, or NULL when it is not a number

    Returns:
        ORDER BY clause (identifier ascending is always the final tiebreaker)

    Note:
        With ``numeric_expression``, numbers sort by value and come before
        every non-numeric value, which then sort as text.
    """
    terms = []
    sorted_by_id = False

    for order in pageable.sort:
        if not order.is_safe():
            logger.warning(f"Ignoring unsafe sort property: {order.property!r}")
            continue

        direction = "ASC" if order.ascending else "DESC"
        if order.property == "id":
            terms.append(f"{id_column} {direction}")
            sorted_by_id = True
            continue

        if numeric_expression is not None:
            terms.append(f"{numeric_expression(order.property)} {direction} NULLS LAST")
        terms.append(f"{json_expression(order.property)} {direction} NULLS LAST")

    if not sorted_by_id:
        terms.append(f"{id_column} ASC")

    return "ORDER BY " + ", ".join(terms)


def duckdb_numeric_json_value(column: str, prop: str) -> str:
    """DuckDB expression for a JSON property's numeric value (NULL unless it is a number)."""
    path = f"'$.{prop}'"
    return (
        f"CASE WHEN json_type({column}, {path}) IN ('BIGINT', 'UBIGINT', 'HUGEINT', 'DOUBLE') "
        f"THEN TRY_CAST(json_extract_string({column}, {path}) AS DOUBLE) END"
    )
