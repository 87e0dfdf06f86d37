from .alert import AlertViewSet

__all__ = ["AlertViewSet"]
