from datetime import datetime


def square(x, y, size=10):
    """Axis-aligned square building outline with its lower-left corner at (x, y)."""
    return ((x, y), (x + size, y), (x + size, y + size), (x, y + size))


def ts(text):
    return datetime.fromisoformat(text)
