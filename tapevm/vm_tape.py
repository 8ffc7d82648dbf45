"""Tape of VM operations, produced by register allocation."""

from __future__ import annotations

from collections.abc import Iterator

from tapevm.vm_op import U8_MAX, VmOp


class VmTape:
    """Sequence of :class:`VmOp`, stored root first (reverse evaluation order).

    ``slot_count`` is the number of distinct register and memory slots used;
    ``reg_limit`` is the number of registers available before falling back to
    load / store operations.
    """

    def __init__(self, reg_limit: int) -> None:
        self._check_limit(reg_limit)
        self._ops: list[VmOp] = []
        self.slot_count = 1
        self.reg_limit = reg_limit

    @staticmethod
    def _check_limit(reg_limit: int) -> None:
        if not 0 <= reg_limit <= U8_MAX:
            raise ValueError(f"register limit must be between 0 and {U8_MAX}")

    def reset(self, reg_limit: int) -> None:
        """Clear the tape and set a new register limit."""
        self._check_limit(reg_limit)
        self._ops.clear()
        self.slot_count = 1
        self.reg_limit = reg_limit

    def push(self, op: VmOp) -> None:
        """Append an operation (closer to the leaves than those before it)."""
        self._ops.append(op)

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self) -> Iterator[VmOp]:
        """Iterate root first, the opposite of evaluation order."""
        return iter(self._ops)

    def iter_eval(self) -> Iterator[VmOp]:
        """Iterate in evaluation order, leaves first."""
        return reversed(self._ops)