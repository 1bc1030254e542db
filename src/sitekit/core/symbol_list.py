"""ordered, alphabet bound lists of symbols that notify listeners of edits"""

from __future__ import annotations

import copy
import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from typing import Any, Generic, TypeVar

import numpy
import numpy.typing as npt
from typing_extensions import Self

from sitekit.core.alphabet import (
    CODE_DTYPE,
    AlphabetError,
    BadIntError,
    StateAlphabet,
)
from sitekit.util.misc import DimensionError, IndexOutOfBoundsError, check_index

ElementType = TypeVar("ElementType")


class ListenerError(ValueError): ...


@dataclasses.dataclass(frozen=True)
class EditionEvent:
    """the content of symbol_list is replaced"""

    symbol_list: SymbolList


@dataclasses.dataclass(frozen=True)
class InsertionEvent(EditionEvent):
    position: int
    length: int


@dataclasses.dataclass(frozen=True)
class DeletionEvent(EditionEvent):
    position: int
    length: int


@dataclasses.dataclass(frozen=True)
class SubstitutionEvent(EditionEvent):
    """elements begin to end, inclusive, changed value"""

    begin: int
    end: int


class SymbolListListener:
    """receives a call before and after every edit of a symbol list

    Attributes
    ----------
    removable
        False for listeners that a symbol list relies on, these cannot be
        removed
    shared
        True for listeners owned elsewhere. They are not carried over to
        copies, whereas owned listeners are cloned into the copy.
    always_notified
        True for listeners that guard the consistency of an owner. They are
        called even when the symbol list's ``propagate_events`` is False.
    """

    removable: bool = True
    shared: bool = False
    always_notified: bool = False

    def clone(self) -> Self:
        return copy.copy(self)

    def before_sequence_changed(self, event: EditionEvent) -> None: ...

    def after_sequence_changed(self, event: EditionEvent) -> None: ...

    def before_sequence_inserted(self, event: InsertionEvent) -> None: ...

    def after_sequence_inserted(self, event: InsertionEvent) -> None: ...

    def before_sequence_deleted(self, event: DeletionEvent) -> None: ...

    def after_sequence_deleted(self, event: DeletionEvent) -> None: ...

    def before_sequence_substituted(self, event: SubstitutionEvent) -> None: ...

    def after_sequence_substituted(self, event: SubstitutionEvent) -> None: ...


class SymbolList(ABC, Generic[ElementType]):
    """ordered content over an alphabet

    Every element is validated against the alphabet before it is stored.
    Edits notify the registered listeners, in registration order, before and
    after the content changes.
    """

    def __init__(self, content: Any = None, *, alphabet: StateAlphabet) -> None:  # noqa: ANN401
        self._alphabet = alphabet
        self._listeners: list[SymbolListListener] = []
        self.propagate_events = True
        self._content = self._empty() if content is None else self._coerce(content)

    @abstractmethod
    def _empty(self) -> numpy.ndarray: ...

    @abstractmethod
    def _coerce(self, values: Any) -> numpy.ndarray: ...  # noqa: ANN401

    @abstractmethod
    def _coerce_one(self, value: Any) -> Any: ...  # noqa: ANN401

    @abstractmethod
    def get_value(self, pos: int) -> ElementType: ...

    @abstractmethod
    def state_value_at(self, pos: int, state: int) -> float:
        """probability that the element at pos is the resolved state"""

    @abstractmethod
    def to_string(self) -> str: ...

    @property
    def alphabet(self) -> StateAlphabet:
        return self._alphabet

    def __len__(self) -> int:
        return self._content.shape[0]

    def __getitem__(self, pos: int) -> ElementType:
        return self.get_value(pos)

    def __setitem__(self, pos: int, value: Any) -> None:  # noqa: ANN401
        self.set_element(pos, value)

    def __iter__(self) -> Iterator[ElementType]:
        for pos in range(len(self)):
            yield self.get_value(pos)

    def __str__(self) -> str:
        return self.to_string()

    def _check_pos(self, pos: int) -> int:
        return check_index(pos, len(self), self.__class__.__name__)

    def get_content(self) -> numpy.ndarray:
        """a copy of the stored content"""
        return self._content.copy()

    # listeners
    def add_listener(self, listener: SymbolListListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SymbolListListener) -> None:
        if not listener.removable:
            msg = f"{listener.__class__.__name__} listener cannot be removed"
            raise ListenerError(msg)
        self._discard_listener(listener)

    def _discard_listener(self, listener: SymbolListListener) -> None:
        for i, registered in enumerate(self._listeners):
            if registered is listener:
                del self._listeners[i]
                return
        msg = f"{listener!r} is not registered"
        raise ListenerError(msg)

    @property
    def num_listeners(self) -> int:
        return len(self._listeners)

    def get_listener(self, index: int) -> SymbolListListener:
        return self._listeners[check_index(index, len(self._listeners), "listeners")]

    def _fire(self, method: str, event: EditionEvent) -> None:
        for listener in list(self._listeners):
            if self.propagate_events or listener.always_notified:
                getattr(listener, method)(event)

    def _after_edit(self) -> None:
        """called once the after callbacks of an edit have run"""

    # edits
    def set_content(self, values: Any) -> None:  # noqa: ANN401
        """replaces all elements"""
        content = self._coerce(values)
        event = EditionEvent(self)
        self._fire("before_sequence_changed", event)
        self._content = content
        self._fire("after_sequence_changed", event)
        self._after_edit()

    def set_element(self, pos: int, value: Any) -> None:  # noqa: ANN401
        pos = self._check_pos(pos)
        value = self._coerce_one(value)
        event = SubstitutionEvent(self, pos, pos)
        self._fire("before_sequence_substituted", event)
        self._content[pos] = value
        self._fire("after_sequence_substituted", event)
        self._after_edit()

    def add_element(self, value: Any, pos: int | None = None) -> None:  # noqa: ANN401
        """inserts value before pos, appends if pos is None"""
        self._insert(self._coerce([value]), pos)

    def append(self, values: Any) -> None:  # noqa: ANN401
        self._insert(self._coerce(values), None)

    def insert(self, values: Any, pos: int) -> None:  # noqa: ANN401
        self._insert(self._coerce(values), pos)

    def _insert(self, values: numpy.ndarray, pos: int | None) -> None:
        size = len(self)
        if pos is None:
            pos = size
        elif not 0 <= pos <= size:
            raise IndexOutOfBoundsError(self.__class__.__name__, pos, 0, size)
        if not len(values):
            return
        event = InsertionEvent(self, pos, len(values))
        self._fire("before_sequence_inserted", event)
        self._content = numpy.concatenate(
            [self._content[:pos], values, self._content[pos:]]
        )
        self._fire("after_sequence_inserted", event)
        self._after_edit()

    def delete_element(self, pos: int) -> None:
        self.delete_elements(pos, 1)

    def delete_elements(self, pos: int, length: int) -> None:
        size = len(self)
        pos = self._check_pos(pos)
        if length < 0 or pos + length > size:
            raise IndexOutOfBoundsError(
                f"{self.__class__.__name__} deletion end", pos + length, 0, size
            )
        event = DeletionEvent(self, pos, length)
        self._fire("before_sequence_deleted", event)
        self._content = numpy.delete(self._content, slice(pos, pos + length), axis=0)
        self._fire("after_sequence_deleted", event)
        self._after_edit()

    def shuffle(self, rng: numpy.random.Generator | None = None) -> None:
        """permutes the elements in place"""
        size = len(self)
        if size < 2:
            return
        rng = numpy.random.default_rng() if rng is None else rng
        event = SubstitutionEvent(self, 0, size - 1)
        self._fire("before_sequence_substituted", event)
        rng.shuffle(self._content, axis=0)
        self._fire("after_sequence_substituted", event)
        self._after_edit()

    def copy(self) -> Self:
        """an independent copy, owned listeners are cloned"""
        new = copy.copy(self)
        new._content = self._content.copy()
        new._listeners = [l.clone() for l in self._listeners if not l.shared]
        return new


_CODE_INFO = numpy.iinfo(CODE_DTYPE)


def _fits_code(low: int, high: int) -> bool:
    return _CODE_INFO.min <= low and high <= _CODE_INFO.max


def _first_bad_code(values: list) -> Any:  # noqa: ANN401
    for value in values:
        if type(value) is not int or not _fits_code(value, value):
            return value
    return values[0]


class IntSymbolList(SymbolList[int]):
    """symbols stored as integer codes of a discrete alphabet

    Content may be given as codes, as a list of state strings or as a string
    that is split into states of the alphabet coding size.
    """

    def _empty(self) -> numpy.ndarray:
        return numpy.empty(0, dtype=CODE_DTYPE)

    def _coerce(self, values: Any) -> numpy.ndarray:  # noqa: ANN401
        if isinstance(values, IntSymbolList):
            values = values._content
        if isinstance(values, str):
            return self._alphabet.to_indices(values)
        if isinstance(values, Sequence) and values and isinstance(values[0], str):
            return self._alphabet.to_indices(values)
        codes = numpy.asarray(values).reshape(-1)
        if not codes.size:
            return self._empty()
        if codes.dtype.kind not in "iu" or not _fits_code(codes.min(), codes.max()):
            raise BadIntError(
                _first_bad_code(codes.tolist()),
                self._alphabet.alphabet_type,
                "codes must be 32 bit integers",
            )
        codes = codes.astype(CODE_DTYPE)
        self._alphabet.validate_codes(codes)
        return codes

    def _coerce_one(self, value: int | str) -> int:
        if isinstance(value, str):
            return self._alphabet.char_to_int(value)
        return int(self._coerce([value])[0])

    def get_value(self, pos: int) -> int:
        return int(self._content[self._check_pos(pos)])

    def get_char(self, pos: int) -> str:
        return self._alphabet.int_to_char(self.get_value(pos))

    def state_value_at(self, pos: int, state: int) -> float:
        """1.0 if the element at pos resolves into state, otherwise 0.0"""
        return 1.0 if self._alphabet.is_resolved_in(self.get_value(pos), state) else 0.0

    def to_string(self) -> str:
        return self._alphabet.from_indices(self._content)

    def to_list(self) -> list[int]:
        return self._content.tolist()


class ProbabilisticSymbolList(SymbolList[npt.NDArray[numpy.float64]]):
    """each element is a vector of non-negative values over the resolved states

    Values are indexed by the alphabet's ``state_index``.
    """

    def _empty(self) -> numpy.ndarray:
        return numpy.empty((0, self._alphabet.size), dtype=numpy.float64)

    def _coerce(self, values: Any) -> numpy.ndarray:  # noqa: ANN401
        if isinstance(values, ProbabilisticSymbolList):
            values = values._content
        data = numpy.array(values, dtype=numpy.float64)
        if data.size == 0:
            return self._empty()
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.ndim != 2 or data.shape[1] != self._alphabet.size:
            msg = (
                f"each element must have {self._alphabet.size} values,"
                f" got shape {data.shape}"
            )
            raise DimensionError(msg)
        if not numpy.isfinite(data).all() or (data < 0).any():
            msg = "element values must be finite and non-negative"
            raise AlphabetError(msg)
        return data

    def _coerce_one(self, value: Any) -> numpy.ndarray:  # noqa: ANN401
        return self._coerce([value])[0]

    def get_value(self, pos: int) -> npt.NDArray[numpy.float64]:
        return self._content[self._check_pos(pos)].copy()

    def state_value_at(self, pos: int, state: int) -> float:
        pos = self._check_pos(pos)
        return float(self._content[pos, self._alphabet.state_index(state)])

    def to_string(self) -> str:
        rows = (
            "(" + ",".join(f"{v:g}" for v in row) + ")" for row in self._content
        )
        return " ".join(rows)
