"""Top-level package for the CTO portal gateway."""

# The FastAPI factory is imported lazily so the domain helpers (allocation,
# validation) stay importable without building the application.

__all__ = ["create_app"]


def __getattr__(name):
    """Lazy import of the application factory."""
    if name == "create_app":
        from cto_portal.app.main import create_app as _create_app
        return _create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
