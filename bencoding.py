import re
from enum import Enum
from typing import Optional

from bencode_errors import DecodeError, ErrorKind
from bencode_items import (
    INT64_MAX, INT64_MIN, BDictionary, BInteger, BList, BString, Item,
)

# Constants for Bencoding tokens
TOKEN_INTEGER = b'i'
TOKEN_LIST = b'l'
TOKEN_DICT = b'd'
TOKEN_END = b'e'
TOKEN_STRING_SEPARATOR = b':'
TOKEN_MINUS = b'-'

DEFAULT_MAX_DEPTH = 256

_INTEGER_TEXT = re.compile(rb'-?[0-9]+')


class Settings(Enum):
    """Decoder settings, applied with Decoder.setting()."""
    # Only dictionaries with ascending keys are accepted
    SORTED_DICTIONARIES = 'sorted'
    # Any key order is accepted; keys are re-sorted in the result
    UNSORTED_DICTIONARIES = 'unsorted'


class Decoder:
    """
    Decodes bencoded binary data into items.
    Uses a recursive descent parser over the whole buffer. Decoded byte
    strings borrow from the buffer instead of copying it.
    """
    def __init__(self, data, max_depth: int = DEFAULT_MAX_DEPTH):
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError('Argument "data" must be of type bytes')
        # Decoded strings borrow from the buffer, so it must not change under them
        if not isinstance(data, bytes):
            data = bytes(data)
        self._data = data
        self._view = memoryview(data).toreadonly()
        self._index = 0
        self._depth = 0
        self._max_depth = max_depth
        self.allow_unsorted_dictionaries = False

    def setting(self, setting: Settings):
        """
        Applies a setting and returns the decoder, so calls can be chained:
        Decoder(data).setting(Settings.UNSORTED_DICTIONARIES).decode()
        """
        if setting is Settings.SORTED_DICTIONARIES:
            self.allow_unsorted_dictionaries = False
        elif setting is Settings.UNSORTED_DICTIONARIES:
            self.allow_unsorted_dictionaries = True
        else:
            raise ValueError(f"Unknown decoder setting: {setting!r}")
        return self

    def decode(self) -> list:
        """
        Decodes every item up to the end of the buffer and returns them in
        order. Raises DecodeError on the first malformed item.
        """
        items = []
        while self._peek() is not None:
            items.append(self.decode_item())
        return items

    def decode_item(self) -> Item:
        """Decodes the single item starting at the cursor."""
        c = self._peek()
        if c is None:
            raise self._error(ErrorKind.UNEXPECTED_END_OF_BUFFER, len(self._data))
        elif c.isdigit():
            return self._decode_string()
        elif c == TOKEN_INTEGER:
            self._consume()  # eat 'i'
            return self._decode_int()
        elif c == TOKEN_LIST:
            self._consume()  # eat 'l'
            return self._decode_list()
        elif c == TOKEN_DICT:
            self._consume()  # eat 'd'
            return self._decode_dict()
        else:
            raise DecodeError(ErrorKind.UNEXPECTED_BYTE, self._index, c[0])

    def _peek(self):
        if self._index >= len(self._data):
            return None
        return bytes(self._data[self._index:self._index + 1])

    def _consume(self):
        self._index += 1

    def _error(self, kind: ErrorKind, position: Optional[int] = None):
        return DecodeError(kind, self._index if position is None else position)

    def _read_until(self, token: bytes):
        """
        Returns the bytes between the cursor and the next `token` and moves
        the cursor past the token.
        """
        end = self._data.find(token, self._index)
        if end == -1:
            raise self._error(ErrorKind.UNEXPECTED_END_OF_BUFFER, len(self._data))
        text = bytes(self._data[self._index:end])
        self._index = end + 1
        return text

    def _decode_int(self) -> BInteger:
        start = self._index
        text = self._read_until(TOKEN_END)
        return BInteger(_parse_int(text, start))

    def _decode_string(self) -> BString:
        start = self._index
        length = _parse_int(self._read_until(TOKEN_STRING_SEPARATOR), start)
        end = self._index + length
        if end > len(self._data):
            raise self._error(ErrorKind.UNEXPECTED_END_OF_BUFFER, len(self._data))
        s = BString.borrowed(self._view[self._index:end])
        self._index = end
        return s

    def _enter(self):
        self._depth += 1
        if self._depth > self._max_depth:
            raise self._error(ErrorKind.NESTING_TOO_DEEP)

    def _decode_list(self) -> BList:
        self._enter()
        res = []
        while True:
            c = self._peek()
            if c is None:
                raise self._error(ErrorKind.UNEXPECTED_END_OF_BUFFER, len(self._data))
            if c == TOKEN_END:
                break
            res.append(self.decode_item())
        self._consume()  # eat 'e'
        self._depth -= 1
        return BList(res)

    def _decode_dict(self) -> BDictionary:
        self._enter()
        pairs = []
        while True:
            c = self._peek()
            if c is None:
                raise self._error(ErrorKind.UNEXPECTED_END_OF_BUFFER, len(self._data))
            if c == TOKEN_END:
                break

            key_start = self._index
            key = self.decode_item().as_string()
            if key is None:
                raise self._error(ErrorKind.INVALID_DICTIONARY_KEY, key_start)
            # Equal neighbouring keys are let through; the later value wins
            if not self.allow_unsorted_dictionaries and pairs and key < pairs[-1][0]:
                raise self._error(ErrorKind.UNSORTED_DICTIONARY, key_start)

            if self._peek() is None:
                raise self._error(ErrorKind.UNEXPECTED_END_OF_BUFFER, len(self._data))
            pairs.append((key, self.decode_item()))
        self._consume()  # eat 'e'
        self._depth -= 1
        return BDictionary(pairs)


def _parse_int(text: bytes, position: int) -> int:
    """
    Parses the text of an integer or a string length. The checks run in a
    fixed order: leading zeros, then negative zero, then the number itself.
    """
    digits = text[1:] if text.startswith(TOKEN_MINUS) else text
    if len(digits) >= 2 and digits.startswith(b'0'):
        raise DecodeError(ErrorKind.LEADING_ZEROS, position)
    if text == b'-0':
        raise DecodeError(ErrorKind.NEGATIVE_ZERO, position)
    if not _INTEGER_TEXT.fullmatch(text):
        raise DecodeError(ErrorKind.INVALID_DATA, position)
    value = int(text)
    if not INT64_MIN <= value <= INT64_MAX:
        raise DecodeError(ErrorKind.INVALID_DATA, position)
    return value


class Encoder:
    """
    Encodes an item, or a list/tuple of items, into bencoded binary data.
    Dictionaries come out in their (always sorted) iteration order.
    """
    def __init__(self, data):
        self._data = data

    def encode(self) -> bytes:
        if isinstance(self._data, Item):
            return self._encode_next(self._data)
        elif isinstance(self._data, (list, tuple)):
            return b''.join([self._encode_next(item) for item in self._data])
        else:
            raise TypeError('Cannot encode type: {}'.format(type(self._data)))

    def _encode_next(self, data):
        if isinstance(data, BString):
            return self._encode_string(data)
        elif isinstance(data, BInteger):
            return self._encode_int(data.value)
        elif isinstance(data, BList):
            return self._encode_list(data)
        elif isinstance(data, BDictionary):
            return self._encode_dict(data)
        else:
            raise TypeError('Cannot encode type: {}'.format(type(data)))

    def _encode_int(self, value):
        return str(value).encode('utf-8').join([TOKEN_INTEGER, TOKEN_END])

    def _encode_string(self, value: BString):
        length = str(len(value)).encode('utf-8')
        return b''.join([length, TOKEN_STRING_SEPARATOR, value.raw])

    def _encode_list(self, data):
        encoded = b''.join([self._encode_next(item) for item in data])
        return TOKEN_LIST + encoded + TOKEN_END

    def _encode_dict(self, data):
        encoded_items = []
        for key, value in data.items():
            encoded_items.append(self._encode_string(key) + self._encode_next(value))
        return TOKEN_DICT + b''.join(encoded_items) + TOKEN_END


def decode(data, settings: Settings = Settings.SORTED_DICTIONARIES,
           max_depth: int = DEFAULT_MAX_DEPTH) -> list:
    """Decodes every bencoded item in `data`."""
    return Decoder(data, max_depth).setting(settings).decode()


def encode(data) -> bytes:
    """Encodes an item or a sequence of items."""
    return Encoder(data).encode()
