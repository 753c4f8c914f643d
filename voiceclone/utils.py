"""Small formatting helpers for the console."""


def format_time(seconds: float) -> str:
    """Render seconds as ``M:SS`` (e.g. ``0:07``, ``1:00``)."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"
