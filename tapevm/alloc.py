"""Single-pass register allocation from SSA tapes to VM tapes."""

from __future__ import annotations

from collections.abc import Callable

from tapevm.regfile import Allocation, RegisterFile
from tapevm.ssa_op import OperandShape, SsaOp
from tapevm.vm_op import VmOp, VmOpcode
from tapevm.vm_tape import VmTape

_Kind = Allocation.Kind


class RegisterAllocator:
    """Lowers SSA operations, fed root first, into a register-limited VM tape.

    SSA slot 0 is bound to register 0 on construction, so it should be the
    output of the function.  When registers run out, values are spilled to
    memory slots with ``LOAD`` / ``STORE`` operations.
    """

    def __init__(self, reg_limit: int, size: int) -> None:
        self._start(reg_limit, size)

    def _start(self, reg_limit: int, size: int) -> None:
        if size < 1:
            raise ValueError("size must be at least 1, since slot 0 is the output")
        self._file = RegisterFile(reg_limit, size, VmTape(reg_limit))
        self._file.bind_register(0, 0)

    def reset(self, reg_limit: int, size: int) -> None:
        """Start over with a new register limit and SSA size.

        The tape built so far must have been claimed with :meth:`finalize`.
        """
        if len(self._file.tape):
            raise RuntimeError("finalize() must be called before reset()")
        self._start(reg_limit, size)

    def finalize(self) -> VmTape:
        """Return the VM tape built so far, leaving an empty one in its place."""
        tape = self._file.tape
        self._file.tape = VmTape(self._file.reg_limit)
        return tape

    def op(self, op: SsaOp) -> None:
        """Lower one SSA operation, pushing VM operations to the tape."""
        code = VmOpcode[op.opcode.name]
        match op.opcode.shape:
            case OperandShape.INPUT:
                self._op_out_only(op.out, lambda r: VmOp(code, r, lhs=op.lhs))
            case OperandShape.VAR:
                self._op_out_only(op.out, lambda r: VmOp(code, r, lhs=op.lhs))
            case OperandShape.IMM:
                self._op_out_only(op.out, lambda r: VmOp(code, r, imm=op.imm))
            case OperandShape.REG:
                self._op_reg_fn(op.out, op.lhs, lambda o, a: VmOp(code, o, lhs=a))
            case OperandShape.REG_IMM | OperandShape.IMM_REG:
                self._op_reg_fn(
                    op.out, op.lhs, lambda o, a: VmOp(code, o, lhs=a, imm=op.imm)
                )
            case OperandShape.REG_REG:
                self._op_reg_reg(code, op.out, op.lhs, op.rhs)
            case shape:
                raise ValueError(f"cannot lower operation of shape {shape.value}")

    def _push(self, op: VmOp) -> None:
        self._file.tape.push(op)

    def _push_store(self, reg: int, mem: int) -> None:
        self._push(VmOp(VmOpcode.STORE, reg, lhs=mem))
        self._file.release_mem(mem)

    def _get_out_reg(self, out: int) -> int:
        """Return a register bound to SSA slot ``out``, moving it out of memory."""
        alloc = self._file.get_allocation(out)
        if alloc.is_register:
            return alloc.slot
        if alloc.is_memory:
            reg = self._file.get_register()
            self._push_store(reg, alloc.slot)
            self._file.bind_register(out, reg)
            return reg
        raise RuntimeError(f"output slot {out} is unassigned")

    def _op_out_only(self, out: int, make: Callable[[int], VmOp]) -> None:
        r_x = self._get_out_reg(out)
        self._push(make(r_x))
        self._file.release_reg(r_x)

    def _op_reg_fn(
        self, out: int, arg: int, make: Callable[[int, int], VmOp]
    ) -> None:
        f = self._file
        r_x = self._get_out_reg(out)
        alloc = f.get_allocation(arg)
        if alloc.is_register:
            if alloc.slot == r_x:
                raise RuntimeError("argument and output share a register")
            self._push(make(r_x, alloc.slot))
            f.release_reg(r_x)
        elif alloc.is_memory:
            self._push(make(r_x, r_x))
            f.rebind_register(arg, r_x)
            self._push_store(r_x, alloc.slot)
        else:
            self._push(make(r_x, r_x))
            f.rebind_register(arg, r_x)

    def _op_reg_reg(self, code: VmOpcode, out: int, lhs: int, rhs: int) -> None:
        f = self._file

        def make(o: int, a: int, b: int) -> VmOp:
            return VmOp(code, o, lhs=a, rhs=b)

        r_x = self._get_out_reg(out)
        a = f.get_allocation(lhs)
        b = f.get_allocation(rhs)
        distinct = lhs != rhs
        match a.kind, b.kind:
            case _Kind.REGISTER, _Kind.REGISTER:
                self._push(make(r_x, a.slot, b.slot))
                f.release_reg(r_x)
            case _Kind.MEMORY, _Kind.REGISTER:
                self._push(make(r_x, r_x, b.slot))
                f.rebind_register(lhs, r_x)
                self._push_store(r_x, a.slot)
            case _Kind.REGISTER, _Kind.MEMORY:
                self._push(make(r_x, a.slot, r_x))
                f.rebind_register(rhs, r_x)
                self._push_store(r_x, b.slot)
            case _Kind.MEMORY, _Kind.MEMORY:
                r_a = f.get_register() if distinct else r_x
                self._push(make(r_x, r_x, r_a))
                f.rebind_register(lhs, r_x)
                if distinct:
                    f.bind_register(rhs, r_a)
                self._push_store(r_x, a.slot)
                if distinct:
                    self._push_store(r_a, b.slot)
            case _Kind.UNASSIGNED, _Kind.REGISTER:
                self._push(make(r_x, r_x, b.slot))
                f.rebind_register(lhs, r_x)
            case _Kind.REGISTER, _Kind.UNASSIGNED:
                self._push(make(r_x, a.slot, r_x))
                f.rebind_register(rhs, r_x)
            case _Kind.UNASSIGNED, _Kind.UNASSIGNED:
                r_a = f.get_register() if distinct else r_x
                self._push(make(r_x, r_x, r_a))
                f.rebind_register(lhs, r_x)
                if distinct:
                    f.bind_register(rhs, r_a)
            case _Kind.UNASSIGNED, _Kind.MEMORY:
                r_a = f.get_register()
                if r_a == r_x:
                    raise RuntimeError("spill register collides with output")
                self._push(make(r_x, r_x, r_a))
                f.rebind_register(lhs, r_x)
                if distinct:
                    f.bind_register(rhs, r_a)
                self._push_store(r_a, b.slot)
            case _Kind.MEMORY, _Kind.UNASSIGNED:
                r_a = f.get_register()
                if r_a == r_x:
                    raise RuntimeError("spill register collides with output")
                self._push(make(r_x, r_a, r_x))
                f.bind_register(lhs, r_a)
                if distinct:
                    f.rebind_register(rhs, r_x)
                self._push_store(r_a, a.slot)