# tapevm

`tapevm` takes expression tapes in single static assignment (SSA) form, maps
them onto a small register machine and evaluates them in single precision.

An expression is written as an `SsaTape`, which is a list of `SsaOp`
instructions. Each instruction writes one SSA slot and reads other slots, an
input (`x`, `y`, `z`), a variable or an immediate value. The list is stored
root first, so slot 0 holds the result and the leaves come last.

## Example

The signed distance to the unit circle, `x² + y² - 1`:

```python
from tapevm.ssa_op import SsaOp, SsaOpcode
from tapevm.ssa_tape import SsaTape
from tapevm.tracing import PointEvaluator
from tapevm.bulk import FloatSliceEvaluator

tape = SsaTape([
    SsaOp(SsaOpcode.SUB_REG_IMM, 0, lhs=1, imm=1.0),
    SsaOp(SsaOpcode.ADD_REG_REG, 1, lhs=2, rhs=3),
    SsaOp(SsaOpcode.SQUARE_REG, 2, lhs=4),
    SsaOp(SsaOpcode.SQUARE_REG, 3, lhs=5),
    SsaOp(SsaOpcode.INPUT, 4, lhs=0),
    SsaOp(SsaOpcode.INPUT, 5, lhs=1),
])

for line in tape.pretty_lines():
    print(line)
# $5 = INPUT 1
# $4 = INPUT 0
# $3 = SQUARE $5
# $2 = SQUARE $4
# $1 = ADD $2 $3
# $0 = SUB $1 1

vm_tape = tape.get_asm(255)

point = PointEvaluator(vm_tape, var_count=0)
value, choices, simplify = point.eval(0.0, 0.0, 0.0)   # value == -1.0

bulk = FloatSliceEvaluator(vm_tape, var_count=0)
bulk.eval([0.0, 1.0, 2.0], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0])  # [-1.0, 0.0, 3.0]
```

## Modules

- `tapevm.ssa_op`: `SsaOpcode` and the frozen dataclass `SsaOp`. An `SsaOp`
  checks that it has the operands its opcode needs. `output()` gives the
  output slot. `choice_count()` is 1 for `MIN`/`MAX` operations and 0 for the
  rest.
- `tapevm.ssa_tape`: `SsaTape`, which holds `tape`, `choice_count` and a
  `vars` mapping from variable name to index.
  - `reset()` empties the tape.
  - `pretty_lines()` yields readable lines in evaluation order.
  - `pretty_print(file=None)` writes those lines to a file, or to standard
    output.
  - `get_asm(reg_limit)` lowers the tape to a `VmTape`.
- `tapevm.alloc`: `RegisterAllocator`, a single-pass allocator. Feed it SSA
  operations root first with `op()` and collect the result with
  `finalize()`. SSA slot 0 is bound to register 0. Once `reg_limit` registers
  are in use, values spill to memory slots through `LOAD` and `STORE`
  instructions.
- `tapevm.regfile`: `RegisterFile` and `Allocation`. These keep track of
  which SSA slot sits in which register or memory slot while allocation runs.
- `tapevm.lru`: `Lru`, a least-recently-used list of register indices. It
  picks the register to evict when none is free.
- `tapevm.vm_op`: `VmOpcode` and the frozen dataclass `VmOp`, the
  instructions of the register machine, including `LOAD` and `STORE`.
- `tapevm.vm_tape`: `VmTape`, which records `slot_count` and `reg_limit`.
  Iterating it goes root first; `iter_eval()` goes in evaluation order.
- `tapevm.tracing`: `PointEvaluator` evaluates a `VmTape` at one point.
  - It records a `Choice` (`LEFT`, `RIGHT` or `BOTH`) for each `min`/`max`.
    These are OR-ed into any choices passed in.
  - It also reports whether any choice was not `BOTH`, which means the tape
    could be simplified.
  - `tile_sizes_2d()` and `tile_sizes_3d()` return the tile sizes
    `(256, 128, 64, 32, 16, 8)`.
- `tapevm.bulk`: `FloatSliceEvaluator` evaluates a `VmTape` over sequences of
  points. Its `min`/`max` record no choices and ignore a NaN operand.

Both evaluators need a tape planned with the full register limit of 255.
Arithmetic is rounded to single precision after each step.

## Errors

Errors derive from `TapeError` (in `tapevm.errors`):

- `MismatchedSlicesError`: the `xs`, `ys` and `zs` given to
  `FloatSliceEvaluator.eval` differ in length.
- `BadVarSliceError`: the number of variable values does not match the
  evaluator's `var_count`.
- `BadChoiceSliceError`: the number of choices does not match the tape's
  `min`/`max` count.
- `UnknownOpcodeError`: an error class for an unrecognised opcode name. It
  carries the name.

The allocator raises `RuntimeError` when its internal bookkeeping is
inconsistent. The evaluators and the op classes raise `ValueError` for bad
arguments.

## What it does not do

The package starts from ready-made SSA tapes. It has no expression builder
that turns formulas into an `SsaTape`, and no text format to read one from.
Evaluation works on plain floats only. There is no interval or gradient
evaluation, no tape simplification from recorded choices, and no rendering
or meshing.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

The package has no runtime dependencies beyond the standard library.