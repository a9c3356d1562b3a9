"""Satellite messaging gateway synchronization service."""


def __getattr__(name):
    """Lazy import so the sync engine and CLI do not pull in FastAPI."""
    if name == "create_app":
        from .main import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
