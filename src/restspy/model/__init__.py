"""
RestSpy Model

Matchables (doubles and proxies) and the per-port registry that stores them.
"""

from .matchable import Matchable, MatchableRegistry
from .double import Double, Proxy

__all__ = [
    'Matchable',
    'MatchableRegistry',
    'Double',
    'Proxy',
]
