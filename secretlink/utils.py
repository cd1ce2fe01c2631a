import hashlib
import re
from urllib.parse import urlsplit

# URL mode marker: "http://" or "https://", any case
ABSOLUTE_URL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)

def parse_file_size(size_str: str) -> int:
    """Parse file size string with units (B, KB, MB) to bytes.

    Examples:
        "8192" -> 8192 bytes
        "8kb" or "8KB" -> 8192 bytes
        "1mb" or "1MB" -> 1048576 bytes
    """
    size_str = str(size_str).strip()

    # Check if it's just a number (bytes)
    if size_str.isdigit():
        return int(size_str)

    # Parse with units
    match = re.match(r'^(\d+(?:\.\d+)?)\s*(b|kb|mb)$', size_str, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid file size format: {size_str}")

    value = float(match.group(1))
    unit = match.group(2).lower()

    multipliers = {
        'b': 1,
        'kb': 1024 ** 1,
        'mb': 1024 ** 2,
    }

    return int(value * multipliers[unit])

def parse_minutes(time_str: str) -> int:
    """Parse time string with units (m, h, d) to minutes.

    A bare number is already in minutes.

    Examples:
        "15" -> 15 minutes
        "30m" or "30M" -> 30 minutes
        "2h" or "2H" -> 120 minutes
        "1d" or "1D" -> 1440 minutes
    """
    time_str = str(time_str).strip()

    # Check if it's just a number (minutes); may be negative
    if re.match(r'^-?\d+$', time_str):
        return int(time_str)

    # Parse with units
    match = re.match(r'^(\d+(?:\.\d+)?)\s*(m|h|d)$', time_str, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid time format: {time_str}")

    value = float(match.group(1))
    unit = match.group(2).lower()

    multipliers = {
        'm': 1,
        'h': 60,
        'd': 1440
    }

    return int(value * multipliers[unit])

def parse_bool(value) -> bool:
    """Parse env-style booleans ("1", "true", "yes", "on")."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("", "0", "false", "no", "off", "null", "none"):
        return False
    raise ValueError(f"Invalid boolean: {value}")

def parse_disks(disks_str: str) -> dict[str, str]:
    """Parse a disk map of the form "media=/data/media;local=/data/app"."""
    disks = {}
    for entry in re.split(r'[;,]', str(disks_str)):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, root = entry.partition('=')
        name, root = name.strip(), root.strip()
        if not sep or not name or not root:
            raise ValueError(f"Invalid disk entry: {entry}")
        disks[name] = root
    return disks

def is_absolute_url(value: str) -> bool:
    return bool(ABSOLUTE_URL_PATTERN.match(value))

def url_host(url: str) -> str | None:
    """Return the lowercased host of *url*, or None when it can't be parsed."""
    try:
        return urlsplit(url).hostname or None
    except ValueError:
        return None

def token_fingerprint(token: str) -> str:
    """Hash a token using SHA-256 and return as hex string."""
    return hashlib.sha256(token.encode()).hexdigest()

def format_time(minutes: int) -> str:
    """Format minutes into human-readable time string"""
    minutes = max(0, int(minutes))
    d, r = divmod(minutes, 1440)
    h, m = divmod(r, 60)
    return f"{d} days, {h} hours, {m} minutes"
