"""
Generic data services scoped to a Unit of Work.
"""

from .base import DataServiceBase
from .read_only import ReadOnlyDataService
from .crud import CrudDataService

__all__ = [
    "DataServiceBase",
    "ReadOnlyDataService",
    "CrudDataService",
]
