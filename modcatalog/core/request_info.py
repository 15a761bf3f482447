from starlette.requests import Request

def client_ip(request: Request) -> str:
    """
    Best-effort real client address.

    First hop of ``X-Forwarded-For``, then ``X-Real-IP``, then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
