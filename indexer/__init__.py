"""Endpoint record store for Makamesco."""

from .models import CategorySummary, EndpointRecord, EndpointRecordInput
from .sqlite_adapter import EndpointStore, StoreError

__all__ = [
    'CategorySummary',
    'EndpointRecord',
    'EndpointRecordInput',
    'EndpointStore',
    'StoreError'
]
