"""Bookkeeping of registers and memory slots during register allocation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tapevm.lru import Lru
from tapevm.vm_op import U8_MAX, VmOp, VmOpcode
from tapevm.vm_tape import VmTape


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise RuntimeError(message)


@dataclass(frozen=True, slots=True)
class Allocation:
    """Where an SSA slot currently lives: a register, a memory slot, or nowhere."""

    class Kind(Enum):
        REGISTER = "register"
        MEMORY = "memory"
        UNASSIGNED = "unassigned"

    kind: Allocation.Kind
    slot: int | None = None

    @classmethod
    def register(cls, reg: int) -> Allocation:
        return cls(cls.Kind.REGISTER, reg)

    @classmethod
    def memory(cls, mem: int) -> Allocation:
        return cls(cls.Kind.MEMORY, mem)

    @classmethod
    def unassigned(cls) -> Allocation:
        return cls(cls.Kind.UNASSIGNED)

    @property
    def is_register(self) -> bool:
        return self.kind is Allocation.Kind.REGISTER

    @property
    def is_memory(self) -> bool:
        return self.kind is Allocation.Kind.MEMORY

    @property
    def is_unassigned(self) -> bool:
        return self.kind is Allocation.Kind.UNASSIGNED


class RegisterFile:
    """Tracks which SSA slot occupies each register and memory slot.

    Slot indices below ``reg_limit`` are registers; the rest are memory.
    Memory is unlimited: new slots are taken from ``tape.slot_count``.
    Evicting a register pushes a ``LOAD`` to ``tape`` (the tape is built in
    reverse evaluation order).
    """

    def __init__(self, reg_limit: int, size: int, tape: VmTape) -> None:
        if not 0 <= reg_limit <= U8_MAX:
            raise ValueError(f"register limit must be between 0 and {U8_MAX}")
        if size < 0:
            raise ValueError("size must not be negative")
        self.reg_limit = reg_limit
        self.tape = tape
        # SSA slot -> register or memory index, None when unassigned
        self._allocations: list[int | None] = [None] * size
        # register -> SSA slot using it, None when free
        self._registers: list[int | None] = [None] * U8_MAX
        self._lru = Lru(reg_limit)
        # Most recently freed entries are at the back
        self._spare_registers: list[int] = []
        self._spare_memory: list[int] = []

    def get_memory(self) -> int:
        """Return a free memory slot, creating a new one if none is spare."""
        if self._spare_memory:
            return self._spare_memory.pop()
        mem = self.tape.slot_count
        self.tape.slot_count += 1
        _require(mem >= self.reg_limit, f"memory slot {mem} overlaps registers")
        return mem

    def get_allocation(self, n: int) -> Allocation:
        """Return where SSA slot ``n`` lives; a register is marked as recently used."""
        slot = self._allocations[n]
        if slot is None:
            return Allocation.unassigned()
        if slot < self.reg_limit:
            self._lru.poke(slot)
            return Allocation.register(slot)
        return Allocation.memory(slot)

    def _get_spare_register(self) -> int | None:
        if self._spare_registers:
            return self._spare_registers.pop()
        if self.tape.slot_count < self.reg_limit:
            reg = self.tape.slot_count
            _require(self._registers[reg] is None, f"register {reg} is in use")
            self.tape.slot_count += 1
            return reg
        return None

    def get_register(self) -> int:
        """Return a free register, evicting the oldest one to memory if needed."""
        reg = self._get_spare_register()
        if reg is not None:
            _require(self._registers[reg] is None, f"register {reg} is in use")
            self._lru.poke(reg)
            return reg

        reg = self._lru.pop()
        mem = self.get_memory()
        previous = self._registers[reg]
        _require(previous is not None, f"register {reg} to evict is empty")
        self._allocations[previous] = mem
        self._registers[reg] = None
        self.tape.push(VmOp(VmOpcode.LOAD, reg, lhs=mem))
        return reg

    def _not_in_register(self, n: int) -> bool:
        slot = self._allocations[n]
        return slot is None or slot >= self.reg_limit

    def bind_register(self, n: int, reg: int) -> None:
        """Bind SSA slot ``n`` to the free register ``reg``."""
        _require(self._not_in_register(n), f"slot {n} is already in a register")
        _require(self._registers[reg] is None, f"register {reg} is in use")
        self._registers[reg] = n
        self._allocations[n] = reg
        self._lru.poke(reg)

    def rebind_register(self, n: int, reg: int) -> None:
        """Move the occupied register ``reg`` over to SSA slot ``n``."""
        _require(self._not_in_register(n), f"slot {n} is already in a register")
        previous = self._registers[reg]
        _require(previous is not None, f"register {reg} is not in use")
        self._allocations[previous] = None
        self._registers[reg] = n
        self._allocations[n] = reg
        self._lru.poke(reg)

    def release_reg(self, reg: int) -> None:
        """Return register ``reg`` to the pool of spares."""
        _require(reg < self.reg_limit, f"register {reg} is beyond the limit")
        node = self._registers[reg]
        _require(node is not None, f"register {reg} is not in use")
        self._registers[reg] = None
        self._spare_registers.append(reg)
        self._allocations[node] = None

    def release_mem(self, mem: int) -> None:
        """Return memory slot ``mem`` to the pool of spares."""
        _require(mem >= self.reg_limit, f"slot {mem} is a register, not memory")
        self._spare_memory.append(mem)