from .data_access import ReadModelLoader

__all__ = ["ReadModelLoader"]
