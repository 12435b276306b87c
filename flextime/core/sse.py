def sse_event(event: str, data: str) -> str:
    """Frame one server-sent event. `data` must not contain newlines."""
    return f"event: {event}\ndata: {data}\n\n"
