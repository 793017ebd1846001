import re

from tubeloader.errors import ValidationError

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def validate_upload_items(items, max_items: int) -> None:
    """
    Check a raw batch before any job is created.

    Fails on the first violation, in this order:
    - items is a non-empty list
    - at most max_items entries
    - each entry has a string sourceUrl starting with http:// or https://
    """

    if not isinstance(items, list) or len(items) == 0:
        raise ValidationError("items must be a non-empty array.")

    if len(items) > max_items:
        raise ValidationError(f"You can upload up to {max_items} items in one request.")

    for item in items:
        source_url = item.get("sourceUrl") if isinstance(item, dict) else None

        if not source_url or not isinstance(source_url, str):
            raise ValidationError("Each item needs a valid sourceUrl.")

        if not _HTTP_URL.match(source_url.strip()):
            raise ValidationError(f"Invalid URL: {source_url}")
