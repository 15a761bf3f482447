"""
Pure input predicates shared by the request schemas and services.

None of these functions touch storage or raise; callers decide how a failed
check is reported.
"""
import re
from typing import Any
from urllib.parse import urlparse

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_\u4e00-\u9fa5]{2,20}$")
CATEGORY_FILTER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

MAX_TEXT_LENGTH = 1000


def is_valid_username(value: Any) -> bool:
    return isinstance(value, str) and bool(USERNAME_PATTERN.fullmatch(value))


def is_valid_email(value: Any) -> bool:
    if not isinstance(value, str) or value.count("@") != 1:
        return False
    if any(ch.isspace() for ch in value):
        return False
    local, domain = value.split("@")
    if not local or not domain:
        return False
    # domain needs a dot with something on both sides
    head, _, tail = domain.rpartition(".")
    return bool(head) and bool(tail)


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_bounded_text(value: Any, max_length: int = MAX_TEXT_LENGTH) -> bool:
    return isinstance(value, str) and 0 < len(value) <= max_length


def is_valid_category_filter(value: Any) -> bool:
    return isinstance(value, str) and bool(CATEGORY_FILTER_PATTERN.fullmatch(value))
