"""
Exceptions and argument checks shared by all modules.
"""

from typing import Any

class LibRCError(Exception):
    """Base class of all library errors."""

class ValidationError(LibRCError, ValueError):
    """An argument or a settings field has an invalid value."""

    def __init__(self, message: str, field: str = None, value: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value

class LengthMismatchError(ValidationError):
    """A vector does not have the expected length."""

class InvalidOperationError(LibRCError, RuntimeError):
    """The operation is not valid in the current state of the object."""

class NotTrainedError(InvalidOperationError):
    """A readout component was used before being built."""

class AlreadyBuiltError(InvalidOperationError):
    """A readout component was built twice without a reset."""

def checkRange(value, name: str, low=None, high=None, lowOpen=False, highOpen=False):
    """Raise `ValidationError` unless `value` lies in the given (optionally open) bounds."""
    ok = True
    if not low is None:
        ok = ok and (value > low if lowOpen else value >= low)
    if not high is None:
        ok = ok and (value < high if highOpen else value <= high)
    if not ok:
        lb = "(" if lowOpen else "["
        hb = ")" if highOpen else "]"
        raise ValidationError(
            f"{name} = {value} is outside {lb}{low}, {high}{hb}", field=name, value=value
        )
    return value

def checkName(value: str, name: str = "name") -> str:
    if value is None or len(str(value).strip()) == 0:
        raise ValidationError(f"{name} can not be empty", field=name, value=value)
    return value

def checkLength(vector, expected: int, name: str = "vector"):
    if len(vector) != expected:
        raise LengthMismatchError(
            f"Incorrect length of {name}: expected {expected}, found {len(vector)}", 
            field=name, value=len(vector)
        )
    return vector
