from .probe import FileInfo, probe
from .path_provider import PathProvider

__all__ = ["FileInfo", "probe", "PathProvider"]
