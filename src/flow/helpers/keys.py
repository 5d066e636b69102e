import re
from typing import Iterable, Mapping

from src.flow.flow_types import STEP_REFERENCE_SEPARATOR, Container

MAX_VERBATIM_LENGTH = 10
MAX_ACRONYM_WORDS = 4
MIN_KEY_LENGTH = 2

_INSTANCE_PATTERN = re.compile(r"^(?P<base>.+?)::(?P<number>\d+)$")
_STEP_KEY_PATTERN = re.compile(r"[^0-9A-Za-z_]+")


def _is_valid_key(key: str) -> bool:
    return (
        len(key) >= MIN_KEY_LENGTH
        and STEP_REFERENCE_SEPARATOR not in key
        and ":" not in key
    )


def short_key_for(friendly_name: str) -> str:
    """
    Derive a short, stable key from a human-readable target name.

    "CJI3" stays "CJI3", "Select Further Settings" becomes "SFS". Words of
    two characters or less are kept whole ("Set to Zero" -> "STOZ"). Pure and
    deterministic: collision checks against existing keys are the caller's job.

    The last-resort key is the first 10 letters, digits or underscores of the
    name, so separators never leak into a key ("a.b.c.d.e.f.g" -> "ABCDEFG").
    """
    name = friendly_name.strip()
    if not name:
        return ""

    if " " not in name and len(name) <= MAX_VERBATIM_LENGTH:
        return name.upper()

    words = name.split()
    key = "".join(
        word if len(word) <= 2 else word[0]
        for word in words[:MAX_ACRONYM_WORDS]
    ).upper()

    if len(key) < MIN_KEY_LENGTH:
        key = words[0][:4].upper()

    if not _is_valid_key(key):
        key = _STEP_KEY_PATTERN.sub("", name)[:MAX_VERBATIM_LENGTH].upper()

    return key


def instance_number_for(base_key: str, existing_containers: Iterable[Container]) -> int:
    numbers = [c.instance_number for c in existing_containers if c.base_key == base_key]
    return max(numbers, default=0) + 1


def parse_full_key(full_key: str) -> tuple[str, int]:
    """
    Split "BASE::N" into ("BASE", N). A key without a numeric suffix is
    instance 1. "BASE::1" is accepted and read as the bare key.
    """
    match = _INSTANCE_PATTERN.match(full_key)
    if not match:
        return full_key, 1
    number = int(match.group("number"))
    if number < 1:
        return full_key, 1
    return match.group("base"), number


def allocate_base_key(
    friendly_name: str,
    original_key: str,
    existing_contexts: Mapping[str, str],
) -> str:
    """
    Pick the key under which a target context is registered.

    Args:
        friendly_name: Human-readable target name
        original_key: The longer key the target is known by (catalog name, tcode, ...)
        existing_contexts: Registered base key -> friendly name

    Returns:
        The short key when it is free or already names the same target;
        otherwise the original key, so an existing container is never taken over.
    """
    short_key = short_key_for(friendly_name)
    if not short_key:
        return original_key
    owner = existing_contexts.get(short_key)
    if owner is None or owner == friendly_name:
        return short_key
    return original_key


def step_key_for(name: str | None) -> str:
    """A step map label derived from a control name ("Company Code" -> "Company_Code")."""
    if not name:
        return "step"
    return _STEP_KEY_PATTERN.sub("_", name.strip()).strip("_") or "step"
