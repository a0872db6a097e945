from typing import Any, Callable, Dict, List

from .aws_client import AWS_CALL_ERRORS, PaginationError, error_message


def paginate(operation: Callable[..., Dict[str, Any]],
             request: Dict[str, Any],
             items_key: str,
             token_key: str) -> List[Any]:
    """
    Follow a cursor-paginated list operation to the end and return every item.

    `operation` is called with `request` as keyword arguments. Items are read from
    `response[items_key]`; the cursor is read from `response[token_key]` and sent back
    under the same key on the next call. Stops when a response has no cursor.

    The caller's `request` dict is not modified. The first failure aborts the loop and
    is raised as PaginationError with the original error chained as its cause; items
    from earlier pages are discarded.
    """
    params = dict(request)
    items: List[Any] = []
    while True:
        try:
            data = operation(**params)
        except AWS_CALL_ERRORS as e:
            raise PaginationError(f"Unable to list {items_key}: {error_message(e)}") from e
        items.extend(data.get(items_key) or [])
        token = data.get(token_key)
        if not token:
            return items
        params[token_key] = token
