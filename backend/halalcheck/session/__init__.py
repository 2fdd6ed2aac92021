from .cache import SessionCache, SessionState

__all__ = ["SessionCache", "SessionState"]
