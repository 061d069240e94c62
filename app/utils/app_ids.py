import re
from typing import Iterable, List, Optional

from app.core.exceptions import ValidationError

STEAM_APP_URL = re.compile(r"store\.steampowered\.com/app/(\d+)", re.IGNORECASE)


def parse_app_id(value) -> Optional[int]:
    # Accepts ints and numeric strings; anything else (bools, floats, junk) is rejected
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            parsed = int(text)
            return parsed if parsed > 0 else None
    return None


def require_app_id(value) -> int:
    appid = parse_app_id(value)
    if appid is None:
        raise ValidationError(f"Invalid app id: {value!r}")
    return appid


def unique_app_ids(values: Iterable, cap: Optional[int] = None) -> List[int]:
    """Valid ids in first-seen order, duplicates dropped, truncated to `cap`."""
    seen = set()
    result = []
    for value in values:
        appid = parse_app_id(value)
        if appid is None or appid in seen:
            continue
        seen.add(appid)
        result.append(appid)
        if cap is not None and len(result) >= cap:
            break
    return result


def app_id_from_steam_url(steam_url: str) -> int:
    """Store URL (https://store.steampowered.com/app/730/...) or a bare app id."""
    text = (steam_url or "").strip()
    match = STEAM_APP_URL.search(text)
    if match:
        return require_app_id(match.group(1))
    if text.isdigit():
        return require_app_id(text)
    raise ValidationError("Invalid Steam URL or app ID")
