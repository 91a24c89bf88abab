from . import api, overlay

__all__ = ["api", "overlay"]
