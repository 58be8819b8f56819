"""Resource naming and tagging conventions shared by every tutorial."""

import re
import secrets
from typing import Dict, List, Optional

MANAGED_BY = "aws-tutorials"


def random_suffix(length: int = 8) -> str:
    """Return ``length`` random lowercase hex characters."""
    return secrets.token_hex((length + 1) // 2)[:length]


def resource_name(
    prefix: str,
    kind: str,
    suffix: str,
    max_length: Optional[int] = None,
    alphanumeric: bool = False,
) -> str:
    """
    Compose a unique resource name.

    Example:
      resource_name("tutorial", "bucket", "1a2b3c4d") -> tutorial-bucket-1a2b3c4d

    Args:
        prefix: Project-wide prefix
        kind: Short resource kind
        suffix: Per-run random suffix
        max_length: Truncate to this many characters, keeping the suffix
        alphanumeric: Strip everything except letters and digits

    Returns:
        The composed name.
    """
    name = f"{prefix}-{kind}-{suffix}"
    if alphanumeric:
        name = re.sub(r"[^A-Za-z0-9]", "", name)
        tail = re.sub(r"[^A-Za-z0-9]", "", suffix)
    else:
        tail = suffix
    if max_length is not None and len(name) > max_length:
        head = name[: len(name) - len(tail)]
        keep = max(max_length - len(tail), 0)
        name = head[:keep] + tail[-max_length:]
    return name


def standard_tags(name: str, tutorial: str, key_style: str = "Key") -> List[Dict[str, str]]:
    """
    Return the tags applied to every resource a tutorial creates.

    Args:
        name: Value of the Name tag
        tutorial: Tutorial slug
        key_style: "Key" for Key/Value casing, "key" for key/value casing
    """
    pairs = [
        ("Name", name),
        ("Project", "AWSTutorials"),
        ("Tutorial", tutorial),
        ("ManagedBy", MANAGED_BY),
    ]
    if key_style == "key":
        return [{"key": k, "value": v} for k, v in pairs]
    return [{"Key": k, "Value": v} for k, v in pairs]
