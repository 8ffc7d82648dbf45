"""SSA instruction tapes, register allocation onto a small virtual machine, and point and slice evaluation."""

__version__ = "0.1.0"