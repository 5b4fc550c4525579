from .connection import ConnectionContext
from .pipeline import ResponsePipeline
from .resolver import ResponseResolver, resolve
from .server import SimulatorServer

__all__ = ["ConnectionContext", "ResponsePipeline", "ResponseResolver", "SimulatorServer", "resolve"]
