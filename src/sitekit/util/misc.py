"""Utility functions and exceptions shared by the sitekit modules"""

from __future__ import annotations

import operator
import typing

if typing.TYPE_CHECKING:  # pragma: no cover
    from typing import SupportsIndex


class IndexOutOfBoundsError(IndexError):
    """raised when a position falls outside the legal range of a container"""

    def __init__(self, context: str, index: int, lower: int, upper: int) -> None:
        self.index = index
        self.lower = lower
        self.upper = upper
        msg = f"{context}: index {index} not in [{lower}, {upper}]"
        super().__init__(msg)


class DimensionError(ValueError):
    """raised when two objects that must agree in size do not"""


def check_index(index: SupportsIndex, size: int, context: str) -> int:
    """returns index as an int, raising IndexOutOfBoundsError unless 0 <= index < size

    Notes
    -----
    Negative indices are not interpreted from the end.
    """
    index = operator.index(index)
    if not 0 <= index < size:
        raise IndexOutOfBoundsError(context, index, 0, size - 1)
    return index


def get_object_provenance(obj: typing.Any) -> str:  # noqa: ANN401
    """returns string of complete object provenance"""
    if isinstance(obj, type):
        mod = obj.__module__
        name = obj.__name__
    else:
        mod = obj.__class__.__module__
        name = obj.__class__.__name__

    if mod is None or mod == "builtins":
        return name
    return f"{mod}.{name}"
