"""Input clean-up for URLs arriving through the API."""

from urllib.parse import urlsplit, urlunsplit

ALLOWED_SCHEMES = ("http", "https")


def sanitize_url(value: str) -> str:
    """
    Normalize a scanned or typed URL.

    A well-formed http(s) URL comes back re-serialized. Any other explicit
    scheme is rejected. Input without a scheme gets an https:// prefix.

    Raises:
        ValueError: if the URL uses a scheme other than http or https
    """
    value = value.strip()
    if not value:
        raise ValueError("Invalid URL")

    try:
        parts = urlsplit(value)
    except ValueError:
        parts = None

    if parts is not None and parts.scheme:
        if parts.scheme in ALLOWED_SCHEMES:
            if not parts.netloc:
                raise ValueError("Invalid URL")
            return urlunsplit((parts.scheme, parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment))
        # "example.com:8080" splits as scheme "example.com"
        if "." not in parts.scheme:
            raise ValueError("Invalid protocol")

    if value.startswith(("http://", "https://")):
        return value
    return "https://" + value
