"""
Errors - Exception taxonomy for the toolchain

Fatal errors abort the operation they occur in:
- ConfigurationError: bad plugin or platform configuration (checked before any task runs)
- DiscoveryError: a manifest could not be parsed
- PreconditionError: the game data directory is missing (checked before any file is touched)
- PackOperationError: copy/zip/delete failed for one pack
- ConcurrentStepError: one or more children of a concurrent group failed

An empty pack set is not an error; it is logged and the operation is a no-op.
"""
from pathlib import Path
from typing import List, Optional, Tuple


class ToolchainError(Exception):
    """Base class for all toolchain errors"""
    pass


class ConfigurationError(ToolchainError):
    """Raised when the toolchain configuration cannot be used"""
    pass


class DiscoveryError(ToolchainError):
    """Raised when a pack manifest is malformed"""

    def __init__(self, message: str, manifest_path: Optional[Path] = None):
        super().__init__(message)
        self.manifest_path = manifest_path


class PreconditionError(ToolchainError):
    """Raised when a required directory is missing before side effects start"""
    pass


class PackOperationError(ToolchainError):
    """Raised when a file operation on a single pack fails"""

    def __init__(self, operation: str, pack_name: str, cause: Exception):
        super().__init__(f"{operation} failed for pack '{pack_name}': {cause}")
        self.operation = operation
        self.pack_name = pack_name
        self.cause = cause


class ConcurrentStepError(ToolchainError):
    """
    Raised by a concurrent group after all children finished and at least one failed

    Attributes:
        errors: (step name, exception) pairs in child declaration order
    """

    def __init__(self, group_name: str, errors: List[Tuple[str, BaseException]]):
        names = ", ".join(name for name, _ in errors)
        super().__init__(f"{len(errors)} step(s) failed in '{group_name}': {names}")
        self.group_name = group_name
        self.errors = errors


__all__ = [
    "ToolchainError",
    "ConfigurationError",
    "DiscoveryError",
    "PreconditionError",
    "PackOperationError",
    "ConcurrentStepError",
]
