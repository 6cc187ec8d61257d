# fleet_induction/utils/normalization.py
from typing import Any, Dict


def normalize_to_int(value: Any, default: int = 0) -> int:
    """Safely normalize value to integer, handling strings and edge cases"""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return default if value != value else int(value)
    if isinstance(value, str):
        try:
            cleaned = value.strip()
            if not cleaned:
                return default
            return int(float(cleaned))  # Handle "2.0" strings
        except (ValueError, AttributeError):
            return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def normalize_to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (ValueError, TypeError):
        return default
    # NaN from pandas
    return default if result != result else result


def normalize_to_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if hasattr(value, "item") and not isinstance(value, str):
        value = value.item()  # numpy scalar
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return default if value != value else bool(value)
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in ("true", "yes", "y", "1", "valid"):
            return True
        if cleaned in ("false", "no", "n", "0", "expired", "invalid"):
            return False
    return default


def set_nested_value(obj: Dict[str, Any], path: str, value: Any) -> None:
    """Set a value in a nested dict using a dot path, creating intermediate dicts"""
    keys = path.split(".")
    current = obj
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value
