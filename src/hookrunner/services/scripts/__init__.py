from .resolution import ScriptResolver
from .habitats import HabitatAllocator
from .execution import ActiveExecution, Executor

__all__ = ["ScriptResolver", "HabitatAllocator", "ActiveExecution", "Executor"]
