"""Provider failure categorisation.

Maps arbitrary provider exceptions onto :class:`ProviderErrorCategory` and
supplies the text shown in place of a failed response.

Functions
---------
- categorize_error  — pick the category for an exception
- error_message     — user-facing text for a category
"""
from __future__ import annotations

from chat_timeline.errors import ProviderError, ProviderErrorCategory

_STATUS_CATEGORIES: dict[int, ProviderErrorCategory] = {
    401: ProviderErrorCategory.INVALID_KEY,
    403: ProviderErrorCategory.FORBIDDEN,
    404: ProviderErrorCategory.MODEL_UNAVAILABLE,
    429: ProviderErrorCategory.RATE_LIMITED,
}

# Checked in order; the first match wins.
_TEXT_CATEGORIES: tuple[tuple[tuple[str, ...], ProviderErrorCategory], ...] = (
    (("403", "permission denied"), ProviderErrorCategory.FORBIDDEN),
    (("401", "api key not valid"), ProviderErrorCategory.INVALID_KEY),
    (("429", "resource exhausted"), ProviderErrorCategory.RATE_LIMITED),
    (("404", "not found"), ProviderErrorCategory.MODEL_UNAVAILABLE),
    (("fetch failed", "network", "connection"), ProviderErrorCategory.NETWORK_FAILURE),
)

_MESSAGES: dict[ProviderErrorCategory, str] = {
    ProviderErrorCategory.INVALID_KEY: "Invalid API key. Please update your key.",
    ProviderErrorCategory.FORBIDDEN: (
        "Access denied. Check that your API key has no HTTP referrer or "
        "IP restrictions that block this client."
    ),
    ProviderErrorCategory.RATE_LIMITED: (
        "Rate limit reached. Try again later, use a different key, or enable "
        "pay-as-you-go billing."
    ),
    ProviderErrorCategory.MODEL_UNAVAILABLE: (
        "The requested model is not available for this API key. Please check "
        "your project settings."
    ),
    ProviderErrorCategory.NETWORK_FAILURE: (
        "Network error. Please check your internet connection and try again."
    ),
    ProviderErrorCategory.UNKNOWN: (
        "I'm sorry, something went wrong. Please check your network connection."
    ),
}


def _status_code(exc: BaseException) -> int | None:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def categorize_error(exc: BaseException) -> ProviderErrorCategory:
    """Return the failure category for ``exc``.

    A :class:`ProviderError` carries its own category.  Otherwise an integer
    HTTP status attribute (``code``, ``status_code`` or ``status``) is
    consulted, then the exception text, then the exception type.
    """
    if isinstance(exc, ProviderError):
        return exc.category

    status = _status_code(exc)
    if status is not None and status in _STATUS_CATEGORIES:
        return _STATUS_CATEGORIES[status]

    text = str(exc).lower()
    for needles, category in _TEXT_CATEGORIES:
        if any(needle in text for needle in needles):
            return category

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ProviderErrorCategory.NETWORK_FAILURE
    return ProviderErrorCategory.UNKNOWN


def error_message(category: ProviderErrorCategory) -> str:
    """Return the user-facing text rendered for ``category``."""
    return _MESSAGES[category]
