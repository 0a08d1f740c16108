"""
Phase operations of the object storage benchmark.
"""

from .write import WriteOperation, generate_object_key
from .read import ReadOperation
from .stat import StatOperation
from .remove import RemoveOperation

__all__ = [
    'WriteOperation',
    'ReadOperation',
    'StatOperation',
    'RemoveOperation',
    'generate_object_key',
]
