"""
Test helpers for the DynamoDB mapper.

Sample domain models used across unit and integration tests.
"""

from .sample_models import AuditNote, SensorReading, TaggedAsset, UserProfile

__all__ = [
    'AuditNote',
    'SensorReading',
    'TaggedAsset',
    'UserProfile',
]
