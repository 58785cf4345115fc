"""
Selectors package
-----------------
Immutable selector chains and the resolver that replays them against the
live page through Playwright element handles.
"""

from .chain import SelectorChain
from .handle_actions import HandleVisibility
from .resolver import (
    ChainRootError,
    FluentSelector,
    NoActivePageError,
    SelectorResolver,
    UnimplementedActionError,
)

__all__ = [
    "SelectorChain",
    "HandleVisibility",
    "SelectorResolver",
    "FluentSelector",
    "ChainRootError",
    "UnimplementedActionError",
    "NoActivePageError",
]
