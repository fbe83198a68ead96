"""Snapshot of the tools currently advertised by the record store.

Readers always work against one immutable RegistrySnapshot. A refresh builds a
new snapshot and swaps the reference, so concurrent conversations never see a
half-updated tool set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from visitor_assistant.models import ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of one successful tools/list fetch."""
    tools: tuple[ToolDescriptor, ...] = ()
    by_name: dict[str, ToolDescriptor] = field(default_factory=dict)

    @classmethod
    def build(cls, descriptors: Iterable[ToolDescriptor]) -> RegistrySnapshot:
        by_name: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in by_name:
                logger.warning(f"Duplicate tool name '{descriptor.name}' ignored")
                continue
            by_name[descriptor.name] = descriptor
        return cls(tools=tuple(by_name.values()), by_name=by_name)

    def get(self, name: str) -> ToolDescriptor | None:
        return self.by_name.get(name)

    def ordered_names(self) -> tuple[str, ...]:
        return tuple(self.by_name)

    def __len__(self) -> int:
        return len(self.tools)


class ToolRegistry:
    """Holds the current tool snapshot and exposes name lookups."""

    def __init__(self) -> None:
        self._snapshot = RegistrySnapshot()

    def replace(self, descriptors: Iterable[ToolDescriptor]) -> RegistrySnapshot:
        """Replace the whole tool set with a freshly fetched one."""
        snapshot = RegistrySnapshot.build(descriptors)
        self._snapshot = snapshot
        logger.info(f"Tool registry refreshed: {', '.join(snapshot.by_name) or '(empty)'}")
        return snapshot

    def current(self) -> RegistrySnapshot:
        return self._snapshot

    def snapshot(self) -> tuple[ToolDescriptor, ...]:
        return self._snapshot.tools

    def known_names(self) -> frozenset[str]:
        return frozenset(self._snapshot.by_name)

    def ordered_names(self) -> tuple[str, ...]:
        """Known names in the order the server listed them."""
        return self._snapshot.ordered_names()

    def get(self, name: str) -> ToolDescriptor | None:
        return self._snapshot.get(name)

    def __len__(self) -> int:
        return len(self._snapshot)
