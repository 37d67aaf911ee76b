"""Input Validation — pure range/format checks run before any write.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - check_* return InvalidArgumentError on violation, None on success
    - first_error() chains checks: first error wins

Design Decisions:
    - Return errors (not raise): callers chain several checks and raise once,
      keeping the rule functions trivially testable
"""

from urllib.parse import urlparse

from factsnap.core.errors import InvalidArgumentError


MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 120

MIN_BODY_LENGTH = 3
MAX_BODY_LENGTH = 2200

MIN_POLL_OPTIONS = 1
MAX_POLL_OPTIONS = 10
MIN_POLL_OPTION_LENGTH = 1
MAX_POLL_OPTION_LENGTH = 100

MAX_IMAGE_URLS = 10

MIN_PAGE_LIMIT = 1
MAX_PAGE_LIMIT = 100


def first_error(*errors: InvalidArgumentError | None) -> InvalidArgumentError | None:
    for error in errors:
        if error is not None:
            return error
    return None


def check_title(title: str) -> InvalidArgumentError | None:
    if len(title) < MIN_TITLE_LENGTH:
        return InvalidArgumentError(
            f"title must be at least {MIN_TITLE_LENGTH} characters long",
            field="title",
        )
    if len(title) > MAX_TITLE_LENGTH:
        return InvalidArgumentError(
            f"title cannot exceed {MAX_TITLE_LENGTH} characters", field="title",
        )
    return None


def check_body(body: str | None) -> InvalidArgumentError | None:
    """Question body is optional; when present it is length-bounded."""
    if body is None:
        return None
    if len(body) < MIN_BODY_LENGTH:
        return InvalidArgumentError(
            f"body must be at least {MIN_BODY_LENGTH} characters long",
            field="body",
        )
    if len(body) > MAX_BODY_LENGTH:
        return InvalidArgumentError(
            f"body cannot exceed {MAX_BODY_LENGTH} characters", field="body",
        )
    return None


def check_response_body(body: str) -> InvalidArgumentError | None:
    if not body or not body.strip():
        return InvalidArgumentError("body is required", field="body")
    if len(body) > MAX_BODY_LENGTH:
        return InvalidArgumentError(
            f"body cannot exceed {MAX_BODY_LENGTH} characters", field="body",
        )
    return None


def check_coordinates(latitude: float, longitude: float) -> InvalidArgumentError | None:
    if not -90.0 <= latitude <= 90.0:
        return InvalidArgumentError(
            f"{latitude} is not a valid latitude", field="location",
        )
    if not -180.0 <= longitude <= 180.0:
        return InvalidArgumentError(
            f"{longitude} is not a valid longitude", field="location",
        )
    return None


def check_image_urls(urls: list[str]) -> InvalidArgumentError | None:
    if len(urls) > MAX_IMAGE_URLS:
        return InvalidArgumentError(
            f"cannot attach more than {MAX_IMAGE_URLS} images",
            field="image_urls",
        )
    for url in urls:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return InvalidArgumentError(
                f"{url} is not a valid URL", field="image_urls",
            )
    return None


def check_poll_option_labels(labels: list[str]) -> InvalidArgumentError | None:
    if len(labels) < MIN_POLL_OPTIONS:
        return InvalidArgumentError(
            f"must have at least {MIN_POLL_OPTIONS} options",
            field="option_labels",
        )
    if len(labels) > MAX_POLL_OPTIONS:
        return InvalidArgumentError(
            f"cannot exceed {MAX_POLL_OPTIONS} options", field="option_labels",
        )
    for label in labels:
        if len(label) < MIN_POLL_OPTION_LENGTH:
            return InvalidArgumentError(
                f"option label must be at least {MIN_POLL_OPTION_LENGTH} characters long",
                field="option_labels",
            )
        if len(label) > MAX_POLL_OPTION_LENGTH:
            return InvalidArgumentError(
                f"{label[:20]}... option label cannot exceed "
                f"{MAX_POLL_OPTION_LENGTH} characters",
                field="option_labels",
            )
    return None


def check_page(limit: int, offset: int) -> InvalidArgumentError | None:
    if not MIN_PAGE_LIMIT <= limit <= MAX_PAGE_LIMIT:
        return InvalidArgumentError(
            f"limit must be between {MIN_PAGE_LIMIT}-{MAX_PAGE_LIMIT}",
            field="limit",
        )
    if offset < 0:
        return InvalidArgumentError("offset cannot be negative", field="offset")
    return None


def check_radius(radius_miles: float, max_radius_miles: float) -> InvalidArgumentError | None:
    if not 0 < radius_miles <= max_radius_miles:
        return InvalidArgumentError(
            f"radius must be greater than 0 and at most {max_radius_miles} miles",
            field="radius_miles",
        )
    return None
