"""Diagnostic events and errors raised while building a toolbox."""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


lib_logger = logging.getLogger("toolbox_mcp")


class DiagnosticKind(str, Enum):
    BLOCK_COLLISION = "block_collision"
    UNKNOWN_PARAMETER = "unknown_parameter"
    EMPTY_DROPDOWN = "empty_dropdown"
    MALFORMED_WEIGHT = "malformed_weight"
    RESERVED_VARIABLE_NAME = "reserved_variable_name"
    UNKNOWN_CATEGORY = "unknown_category"
    SYNTHESIS_FAILED = "synthesis_failed"


# Kinds that exclude the offending symbol from the toolbox
FATAL_KINDS = frozenset({DiagnosticKind.BLOCK_COLLISION, DiagnosticKind.SYNTHESIS_FAILED})


class ToolboxError(Exception):
    """Base error for toolbox construction."""


class BlockCollisionError(ToolboxError):
    """A block id is already taken by a built-in block or another symbol."""

    def __init__(self, block_id: str, builtin: bool = False, existing: Optional[str] = None):
        self.block_id = block_id
        self.builtin = builtin
        self.existing = existing
        if builtin:
            message = f"trying to override builtin block {block_id}"
        elif existing:
            message = f"duplicate block definition {block_id} (already registered by {existing})"
        else:
            message = f"duplicate block definition {block_id}"
        super().__init__(message)


@dataclass
class Diagnostic:
    """A single problem found during a rebuild."""
    kind: DiagnosticKind
    message: str
    block_id: Optional[str] = None
    symbol: Optional[str] = None    # Qualified name of the offending symbol
    generation: int = 0

    @property
    def fatal(self) -> bool:
        return self.kind in FATAL_KINDS

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


class DiagnosticLog:
    """Collects diagnostics for one rebuild generation and logs them."""

    def __init__(self, generation: int = 0):
        self.generation = generation
        self.events: list[Diagnostic] = []

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        block_id: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> Diagnostic:
        event = Diagnostic(
            kind=kind,
            message=message,
            block_id=block_id,
            symbol=symbol,
            generation=self.generation,
        )
        self.events.append(event)
        if event.fatal:
            lib_logger.error(f"[gen {self.generation}] {kind.value}: {message}")
        else:
            lib_logger.warning(f"[gen {self.generation}] {kind.value}: {message}")
        return event

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [e for e in self.events if e.kind == kind]

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)
