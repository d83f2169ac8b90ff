"""Validate device names used as table names, quote them for SQL, and validate endpoint hosts."""

import ipaddress
import re

# Letter or underscore, then letters, digits, underscores
_DESTINATION_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_MAX_LENGTH = 64

# RFC 1123 hostname label
_HOST_LABEL_PATTERN = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def validate_destination_name(raw: str) -> str:
    """
    Return the device name stripped of surrounding whitespace if it is usable as a table name.

    Case is preserved. SQLite's internal ``sqlite_`` prefix is rejected.
    Raises ValueError for empty or malformed names.
    """
    s = raw.strip()
    if not s:
        raise ValueError("Device name cannot be empty")
    if len(s) > _MAX_LENGTH:
        raise ValueError(f"Device name longer than {_MAX_LENGTH} characters: {raw!r}")
    if not _DESTINATION_PATTERN.match(s):
        raise ValueError(f"Device name must match [A-Za-z_][A-Za-z0-9_]*: {raw!r}")
    if s.lower().startswith("sqlite_"):
        raise ValueError(f"Device name uses reserved prefix 'sqlite_': {raw!r}")
    return s


def quote_identifier(name: str) -> str:
    """Double-quote an identifier so reserved words (e.g. ``order``) are safe as table names."""
    return '"' + validate_destination_name(name).replace('"', '""') + '"'


def validate_host(raw: str) -> str:
    """
    Return the host stripped of whitespace if it is an IP literal or a well-formed hostname.

    All-numeric dotted names (e.g. ``999.1.1.1``) must be valid IPv4 addresses.
    Raises ValueError otherwise.
    """
    s = raw.strip()
    if not s:
        raise ValueError("Host cannot be empty")
    try:
        return str(ipaddress.ip_address(s))
    except ValueError:
        pass
    name = s[:-1] if s.endswith(".") else s
    labels = name.split(".")
    if len(name) > 253 or not all(_HOST_LABEL_PATTERN.match(label) for label in labels):
        raise ValueError(f"Invalid host address: {raw!r}")
    if labels[-1].isdigit():
        raise ValueError(f"Invalid IP address: {raw!r}")
    return s
