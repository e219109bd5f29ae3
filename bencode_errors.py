from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """
    Categories of decode failures.
    """
    UNEXPECTED_BYTE = 'unexpected byte'
    UNEXPECTED_END_OF_BUFFER = 'unexpected end of buffer'
    UNSORTED_DICTIONARY = 'unsorted dictionary'
    INVALID_DICTIONARY_KEY = 'invalid dictionary key'
    LEADING_ZEROS = 'leading zeros'
    NEGATIVE_ZERO = 'negative zero'
    INVALID_DATA = 'invalid data'
    NESTING_TOO_DEEP = 'nesting too deep'


class DecodeError(ValueError):
    """
    Raised when a buffer is not valid bencode.

    `kind` classifies the failure, `byte` is set only for
    ErrorKind.UNEXPECTED_BYTE and `position` is the offset where the
    failing production was detected.
    """
    def __init__(self, kind: ErrorKind, position: Optional[int] = None, byte: Optional[int] = None):
        self.kind = kind
        self.position = position
        self.byte = byte
        super().__init__(str(self))

    def __str__(self):
        if self.kind is ErrorKind.UNEXPECTED_BYTE:
            message = f"unexpected byte `{self.byte}`"
        else:
            message = self.kind.value
        if self.position is not None:
            message += f" at index {self.position}"
        return message

    def __repr__(self):
        return f"DecodeError({self.kind.name}, position={self.position}, byte={self.byte})"

    def __eq__(self, other):
        if not isinstance(other, DecodeError):
            return NotImplemented
        return self.kind is other.kind and self.byte == other.byte

    def __hash__(self):
        return hash((self.kind, self.byte))
