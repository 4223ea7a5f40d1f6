import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Tuple

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def dig(obj: Any, path: str) -> Any:
    """Walk a dotted path through nested dicts, returning None on any miss."""
    node = obj
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
        if node is None:
            return None
    return node


def first_present(obj: Any, paths: Iterable[str], default: Any = None) -> Any:
    for path in paths:
        value = dig(obj, path)
        if value is not None:
            return value
    return default


def safe_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def safe_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_riot_id(riot_id: str) -> Tuple[str, str]:
    if "#" not in riot_id:
        raise ValueError("Invalid Riot ID; expected Name#Tag")
    name, tag = riot_id.split("#", 1)
    name, tag = name.strip(), tag.strip()
    if not name or not tag:
        raise ValueError("Invalid Riot ID; expected Name#Tag")
    return name, tag
