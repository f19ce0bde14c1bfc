"""
Retry delay strategies.
"""
from .base import BaseStrategy
from .exponential import ClassifiedBackoffStrategy
from .fixed import FixedDelayStrategy


__all__ = [
    'BaseStrategy',
    'ClassifiedBackoffStrategy',
    'FixedDelayStrategy'
]
