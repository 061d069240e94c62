from typing import Mapping

UNKNOWN_CLIENT = "unknown"

# Identify the caller behind proxies: first hop of X-Forwarded-For, then
# X-Real-IP. Unidentifiable clients all share the "unknown" bucket.
def client_key_from_headers(headers: Mapping[str, str]) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return UNKNOWN_CLIENT
