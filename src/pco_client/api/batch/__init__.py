"""Batch execution of independent operations."""

from .executor import BatchExecutor, BatchReport, BatchResult, OperationCallback
from .operations import (
    BaseOperation,
    BatchOperation,
    CreateOperation,
    DeleteOperation,
    GetOperation,
    UpdateOperation,
    parse_operation,
)

__all__ = [
    "BaseOperation",
    "BatchExecutor",
    "BatchOperation",
    "BatchReport",
    "BatchResult",
    "CreateOperation",
    "DeleteOperation",
    "GetOperation",
    "OperationCallback",
    "UpdateOperation",
    "parse_operation",
]
