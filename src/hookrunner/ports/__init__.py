from .contracts import EventBus, PathProvider, ScriptExecutor

__all__ = ["EventBus", "PathProvider", "ScriptExecutor"]
