"""Top‑level convenience API."""
from .vm import ByteCodeVM, Opcode, VMState
from .core import Entity, Swarm, step
from .phenotype import ExecutionResult, execute
from .config import load_config
__all__ = ['ByteCodeVM', 'Opcode', 'VMState', 'Entity', 'Swarm', 'step',
           'ExecutionResult', 'execute', 'load_config']
