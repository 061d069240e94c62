import base64
import binascii
import json
from typing import Tuple

from app.core.exceptions import ValidationError

SortKey = Tuple[int, float, str]


# Opaque pagination token: the sort key (tier, rank value, identity key)
# of the last item a page emitted, as url-safe base64 JSON.
def encode_cursor(sort_key: SortKey) -> str:
    tier, rank, key = sort_key
    raw = json.dumps([tier, rank, key], separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> SortKey:
    try:
        padded = token + "=" * (-len(token) % 4)
        tier, rank, key = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        if isinstance(tier, bool) or not isinstance(tier, int) or not isinstance(key, str):
            raise ValueError("bad cursor fields")
        return int(tier), float(rank), key
    except (binascii.Error, UnicodeError, ValueError, TypeError) as e:
        raise ValidationError("Invalid pagination cursor") from e
