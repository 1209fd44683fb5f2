"""
PII (Personally Identifiable Information) masking utilities.
"""
import re

CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
UUID_RE = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.I)

PII_FIELDS = {
    "user_id", "shipping_phone", "phone", "shipping_address", "address",
    "shipping_zip", "zip", "notes",
}


def mask_phone(phone: str) -> str:
    """Mask phone number."""
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]


def mask_uuid(uuid_str: str) -> str:
    """Mask UUID (show first 8 chars only)."""
    if len(uuid_str) < 8:
        return "*" * len(uuid_str)
    return uuid_str[:8] + "-****-****-****-************"


def mask_text(text: str) -> str:
    """Keep the first character of every word."""
    return " ".join(word[0] + "*" * (len(word) - 1) for word in text.split())


def mask_value(key: str, value: str) -> str:
    if UUID_RE.match(value):
        return mask_uuid(value)
    if "phone" in key:
        return mask_phone(value)
    return mask_text(value)


def mask_pii_in_dict(data: dict) -> dict:
    """Mask PII in dictionary recursively."""
    masked = {}
    for key, value in data.items():
        key_lower = CAMEL_RE.sub("_", key).lower()

        if isinstance(value, dict):
            masked[key] = mask_pii_in_dict(value)
        elif isinstance(value, list):
            masked[key] = [mask_pii_in_dict(item) if isinstance(item, dict) else item for item in value]
        elif key_lower in PII_FIELDS and isinstance(value, str):
            masked[key] = mask_value(key_lower, value)
        else:
            masked[key] = value

    return masked
