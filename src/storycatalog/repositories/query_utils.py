"""Pure helpers shared by the story queries."""

from storycatalog.domain.errors import InvalidInputError

LIKE_ESCAPE = "\\"


def escape_like(query: str) -> str:
    """Escape LIKE wildcards so user input only matches literally.

    The escape character is handled first; doing it after the wildcards
    would double-escape the backslashes just inserted.
    """
    query = query.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
    query = query.replace("%", LIKE_ESCAPE + "%")
    query = query.replace("_", LIKE_ESCAPE + "_")
    return query


def contains_pattern(query: str) -> str:
    """Build a substring LIKE pattern for ``query``."""
    return f"%{escape_like(query)}%"


def clean_text(value: str | None) -> str | None:
    """Strip a free-text filter value; blank means not specified."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def page_offset(page: int, page_size: int) -> int:
    """Validate pagination and return the row offset for ``page``."""
    if page < 1:
        raise InvalidInputError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise InvalidInputError(f"page_size must be >= 1, got {page_size}")
    return (page - 1) * page_size
