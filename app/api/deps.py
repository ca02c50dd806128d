from fastapi import Header


def get_actor(x_actor: str | None = Header(default=None)) -> str:
    """Who is acting, as asserted by the gateway in front of this service."""
    return (x_actor or "").strip() or "anonymous"
