from fastapi import Request


def client_ip(request: Request) -> str | None:
    # Behind a proxy the left-most X-Forwarded-For entry is the original client.
    forwarded = request.headers.get("x-forwarded-for") or ""
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else None
