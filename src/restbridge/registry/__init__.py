from .registry import OperationRegistry, get_registry, reset_registry, set_registry

__all__ = ["OperationRegistry", "get_registry", "set_registry", "reset_registry"]
