"""
Database Pagination Utilities
==============================
Consistent limit/offset handling for read helpers.

- Default limit: 100
- Maximum limit: 500
- Minimum limit: 1
- Minimum offset: 0
"""

DEFAULT_LIMIT = 100
MAX_LIMIT = 500
MIN_LIMIT = 1
MIN_OFFSET = 0


def validate_pagination(
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[int, int]:
    """
    Validate pagination parameters.

    Returns:
        Tuple of (validated_limit, validated_offset)

    Raises:
        ValueError: If parameters are out of range
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    elif limit < MIN_LIMIT:
        raise ValueError(f"Limit must be at least {MIN_LIMIT}")
    elif limit > MAX_LIMIT:
        raise ValueError(f"Limit cannot exceed {MAX_LIMIT}")

    if offset is None:
        offset = MIN_OFFSET
    elif offset < MIN_OFFSET:
        raise ValueError(f"Offset must be at least {MIN_OFFSET}")

    return limit, offset
