"""Capability Abstraction Layer: provider-independent "can-do" predicates.

Submodules
----------
- ``models``: ``ProviderPath``, ``ProviderKind``, ``Capability``,
  ``CapabilityStatus``, ``CapabilityReport`` and the ``builtin``/``driver``
  path shorthands.
- ``layer``: ``CapabilityLayer``, registration and availability queries.
"""

from flagresolve.core.capabilities.layer import CapabilityLayer
from flagresolve.core.capabilities.models import (
    Capability,
    CapabilityReport,
    CapabilityStatus,
    ProviderKind,
    ProviderPath,
    builtin,
    driver,
)

__all__ = [
    "Capability",
    "CapabilityLayer",
    "CapabilityReport",
    "CapabilityStatus",
    "ProviderKind",
    "ProviderPath",
    "builtin",
    "driver",
]
