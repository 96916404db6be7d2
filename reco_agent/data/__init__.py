"""Data layer components."""
from .models import ExecuteQueryResponse
from .query_service import HTTPQueryClient

__all__ = [
    'ExecuteQueryResponse',
    'HTTPQueryClient',
]
