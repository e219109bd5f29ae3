from collections.abc import Mapping, Sequence
from functools import total_ordering

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


class Item:
    """
    Base of the four bencode value types: BString, BInteger, BList and
    BDictionary. Items are immutable; each accessor returns the item itself
    when the variant matches and None otherwise.
    """
    def as_string(self):
        return None

    def as_integer(self):
        return None

    def as_list(self):
        return None

    def as_dictionary(self):
        return None


@total_ordering
class BString(Item):
    """
    A byte string. Either owns its bytes or borrows a read-only view of a
    decoder's input buffer (see BString.borrowed).
    """
    def __init__(self, data=b''):
        if isinstance(data, BString):
            data = data._data
        elif isinstance(data, str):
            data = data.encode('utf-8')
        elif not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Cannot build a byte string from {type(data).__name__}")
        self._data = bytes(data)

    @classmethod
    def borrowed(cls, view: memoryview):
        """Wraps a read-only memoryview without copying it."""
        if not isinstance(view, memoryview) or not view.readonly:
            raise TypeError("Borrowed strings need a read-only memoryview")
        s = cls.__new__(cls)
        s._data = view
        return s

    @property
    def is_borrowed(self) -> bool:
        return isinstance(self._data, memoryview)

    @property
    def raw(self):
        """The owned bytes or the borrowed memoryview, uncopied."""
        return self._data

    @property
    def data(self) -> bytes:
        if self.is_borrowed:
            return self._data.tobytes()
        return self._data

    def to_owned(self):
        if self.is_borrowed:
            return BString(self._data)
        return self

    def as_string(self):
        return self

    def __bytes__(self):
        return self.data

    def __len__(self):
        return len(self._data)

    def __eq__(self, other):
        if not isinstance(other, BString):
            return NotImplemented
        return self._data == other._data

    def __lt__(self, other):
        if not isinstance(other, BString):
            return NotImplemented
        return self.data < other.data

    def __hash__(self):
        # Read-only byte views hash like the equivalent bytes
        return hash(self._data)

    def __str__(self):
        try:
            return str(self._data, 'utf-8')
        except UnicodeDecodeError:
            return repr(self.data)

    def __repr__(self):
        ownership = 'borrowed' if self.is_borrowed else 'owned'
        return f"BString({self.data!r}, {ownership})"


class BInteger(Item):
    """A signed 64-bit integer."""
    def __init__(self, value=0):
        if isinstance(value, BInteger):
            value = value.value
        value = int(value) if isinstance(value, bool) else value
        if not isinstance(value, int):
            raise TypeError(f"Cannot build an integer from {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise OverflowError(f"{value} does not fit in a signed 64-bit integer")
        self.value = value

    def as_integer(self):
        return self

    def __int__(self):
        return self.value

    def __index__(self):
        return self.value

    def __eq__(self, other):
        if not isinstance(other, BInteger):
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return hash(self.value)

    def __repr__(self):
        return f"BInteger({self.value})"


class BList(Item, Sequence):
    """An ordered sequence of items."""
    def __init__(self, items=()):
        self._items = tuple(to_item(item) for item in items)

    def as_list(self):
        return self

    def __getitem__(self, index):
        if isinstance(index, slice):
            return BList(self._items[index])
        return self._items[index]

    def __len__(self):
        return len(self._items)

    def __eq__(self, other):
        if not isinstance(other, BList):
            return NotImplemented
        return self._items == other._items

    __hash__ = None

    def __repr__(self):
        return f"BList({list(self._items)!r})"


class BDictionary(Item, Mapping):
    """
    A mapping of BString keys to items.

    Keys are kept sorted byte-lexicographically, so iteration always follows
    the canonical bencode order no matter how the dictionary was built.
    When the same key is given twice the later value wins.
    """
    def __init__(self, pairs=()):
        if isinstance(pairs, Mapping):
            pairs = pairs.items()
        self._index = {}
        for key, value in pairs:
            self._index[_to_key(key)] = to_item(value)
        self._keys = sorted(self._index, key=bytes)

    def with_item(self, key, value):
        """Returns a copy with `key` set to `value`."""
        return BDictionary(list(self.items()) + [(key, value)])

    def as_dictionary(self):
        return self

    def __getitem__(self, key):
        try:
            key = _to_key(key)
        except TypeError:
            raise KeyError(key) from None
        return self._index[key]

    def __iter__(self):
        return iter(self._keys)

    def __len__(self):
        return len(self._keys)

    def __eq__(self, other):
        if not isinstance(other, BDictionary):
            return NotImplemented
        return list(self.items()) == list(other.items())

    __hash__ = None

    def __repr__(self):
        pairs = ', '.join(f"{k!r}: {v!r}" for k, v in self.items())
        return f"BDictionary({{{pairs}}})"


def _to_key(key) -> BString:
    if isinstance(key, BString):
        return key
    if isinstance(key, (str, bytes, bytearray, memoryview)):
        return BString(key)
    raise TypeError(f"Dictionary keys must be byte strings, not {type(key).__name__}")


def to_item(value) -> Item:
    """
    Converts native Python values into items.
    bool and int become BInteger, str (as UTF-8) and bytes-like objects
    become BString, lists and tuples become BList and mappings become
    BDictionary. Items are returned unchanged.
    """
    if isinstance(value, Item):
        return value
    if isinstance(value, int):
        return BInteger(value)
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        return BString(value)
    if isinstance(value, Mapping):
        return BDictionary(value)
    if isinstance(value, (list, tuple)):
        return BList(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to a bencode item")
