"""
IBCM Toolkit — Symbol Table

Label text -> memory address for one assembly unit. Labels are arbitrary
non-empty text without whitespace or ':' and are compared exactly.
"""

from typing import Dict, Iterator, Optional, Tuple

from .errors import DuplicateLabel


class SymbolTable:
    """Label/address mapping built during pass 1.

    Usage:
        table = SymbolTable()
        table.define('loop', 3, line_num=7)
        table.resolve('loop')   # -> 3
        table.resolve('nope')   # -> None
    """

    def __init__(self):
        self._addresses: Dict[str, int] = {}
        self._lines: Dict[str, int] = {}     # label -> defining source line

    def define(self, label: str, address: int, line_num: int = 0):
        """Bind a label. Redefining an existing label raises DuplicateLabel."""
        if label in self._addresses:
            raise DuplicateLabel(label, line_num, self._lines.get(label, 0))
        self._addresses[label] = address
        self._lines[label] = line_num

    def resolve(self, label: str) -> Optional[int]:
        return self._addresses.get(label)

    def line_of(self, label: str) -> Optional[int]:
        return self._lines.get(label)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._addresses)

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(self._addresses.items())

    def __contains__(self, label) -> bool:
        return label in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    def __iter__(self) -> Iterator[str]:
        return iter(self._addresses)

    def __repr__(self) -> str:
        return f"SymbolTable({self._addresses!r})"
