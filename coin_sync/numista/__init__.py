from .client import NumistaClient, NumistaError

__all__ = ["NumistaClient", "NumistaError"]
