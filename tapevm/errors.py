"""Exceptions raised while building and evaluating tapes."""


class TapeError(Exception):
    """Base class for every error raised by this package."""


class MismatchedSlicesError(TapeError, ValueError):
    """Input slices handed to an evaluator have different lengths."""

    def __init__(self) -> None:
        super().__init__("slice lengths are mismatched")


class BadVarSliceError(TapeError, ValueError):
    """The number of variable values does not match the tape's variable count."""

    def __init__(self, got: int, expected: int) -> None:
        self.got = got
        self.expected = expected
        super().__init__(
            f"var slice length ({got}) does not match var count ({expected})"
        )


class BadChoiceSliceError(TapeError, ValueError):
    """The number of choice slots does not match the tape's choice count."""

    def __init__(self, got: int, expected: int) -> None:
        self.got = got
        self.expected = expected
        super().__init__(
            f"choice slice length ({got}) does not match choice count ({expected})"
        )


class UnknownOpcodeError(TapeError, ValueError):
    """An opcode name could not be recognised."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown opcode {name}")