import re
import unicodedata

SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 80


def normalize_slug(value: str) -> str:
    if not value:
        return ""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = value.lower().strip()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-{2,}", "-", value).strip("-")

    return value[:SLUG_MAX_LENGTH].strip("-")


def is_valid_slug(value: str) -> bool:
    return len(value) >= SLUG_MIN_LENGTH and bool(SLUG_PATTERN.match(value))
