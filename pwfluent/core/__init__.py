"""
Core package for pwfluent.
Hosts the fluent facade tying browser, selectors, recorder and mocks together.

Consumers can import it directly:
  from pwfluent.core.fluent import PlaywrightFluent
"""

from .fluent import PlaywrightFluent

__all__ = ["PlaywrightFluent"]
