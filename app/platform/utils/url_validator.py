import re
from typing import Tuple
from urllib.parse import urlparse

_WHITESPACE = re.compile(r"\s+")


def clean_url(url: str) -> str:
    """Strip surrounding whitespace and any whitespace embedded in the URL."""
    return _WHITESPACE.sub("", url or "")


def has_http_scheme(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def normalize_url(url: str) -> Tuple[str, bool]:

    url = clean_url(url)

    parsed = urlparse(url)

    if not parsed.scheme:
        normalized = f"https://{url}"
        return normalized, True

    return url, False


def validate_url(url: str) -> Tuple[bool, str, str]:
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, was_modified = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)

        if parsed.scheme not in ['http', 'https']:
            return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

        if not parsed.netloc:
            return False, normalized_url, "Invalid URL format: missing domain"

        return True, normalized_url, ""

    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"
