"""Operation binding: request shape + invocation target -> flat callable."""

from .operation import BoundOperation, ContextResolver, Invoker, Operation, bind

__all__ = ["Operation", "BoundOperation", "Invoker", "ContextResolver", "bind"]
