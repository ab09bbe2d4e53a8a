# nhl_ingest/utils/misc_utils.py
from typing import Any, Mapping, Optional


def unwrap_localized(value: Any) -> Any:
    """Returns the ``default`` entry of a localized ``{"default": ...}`` value.

    The web API wraps most strings this way; the stats API returns them bare.
    """
    if isinstance(value, Mapping):
        return value.get("default")
    return value


def is_present(value: Any) -> bool:
    """A value counts as present unless it is None, an empty string or 0."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return value != 0
    return True


def first_present(record: Mapping[str, Any], *fields: str, default: Any = None) -> Any:
    """Returns the first present value among ``fields``, in the order given.

    Upstream payloads spell the same attribute several ways (``teamFullName``,
    ``teamName``, ``team``). Each field is looked up in order, localized
    wrappers are unwrapped, and the first value passing ``is_present`` wins.
    Dotted names (``"firstName.default"``) walk nested mappings.
    """
    for field in fields:
        value: Optional[Any] = record
        for part in field.split("."):
            if not isinstance(value, Mapping):
                value = None
                break
            value = value.get(part)
        value = unwrap_localized(value)
        if is_present(value):
            return value
    return default
