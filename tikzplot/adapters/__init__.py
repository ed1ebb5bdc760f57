from tikzplot.adapters.normalize import normalize_xy

__all__ = ["normalize_xy"]
