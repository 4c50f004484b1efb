"""flagresolve: Fixed-point resolution of compile-time feature flags."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
