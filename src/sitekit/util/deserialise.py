from __future__ import annotations

import json
import os
import pathlib
import typing
from importlib import import_module

_deserialise_func_map: dict[str, typing.Callable] = {}


class register_deserialiser:
    """
    registration decorator for functions to inflate objects that were
    serialised using json.

    Functions are added to a dict which is used by the deserialise_object()
    function. The type string(s) must uniquely identify the appropriate
    value for the dict 'type' entry, e.g. 'sitekit.core.site.Site'.

    Parameters
    ----------
    args: str or sequence of str
        must be unique
    """

    def __init__(self, *args: str) -> None:
        for type_str in args:
            if not isinstance(type_str, str):
                msg = f"{type_str!r} is not a string"
                raise TypeError(msg)
            if type_str in _deserialise_func_map:
                msg = f"{type_str!r} already in {list(_deserialise_func_map)}"
                raise ValueError(msg)
        self._type_str = args

    def __call__(self, func: typing.Callable) -> typing.Callable:
        for type_str in self._type_str:
            _deserialise_func_map[type_str] = func
        return func


def _import_provider(provenance: str) -> None:
    """imports the module named in provenance so its deserialisers register"""
    index = provenance.rfind(".")
    if index <= 0:
        return
    try:
        import_module(provenance[:index])
    except ImportError:
        msg = f"cannot import module for {provenance!r}"
        raise NotImplementedError(msg) from None


def _is_path(data: typing.Any) -> bool:  # noqa: ANN401
    if isinstance(data, pathlib.Path):
        return True
    return (
        isinstance(data, str)
        and not data.lstrip().startswith("{")
        and os.path.exists(data)
    )


def deserialise_object(data: str | os.PathLike | dict) -> typing.Any:  # noqa: ANN401
    """
    deserialises from json

    Parameters
    ----------
    data
        path to json file, json string or a dict

    Returns
    -------
    If the dict from json.loads does not contain a "type" key, the object will
    be returned as is. Otherwise, it will be deserialised to a sitekit object.

    Notes
    -----
    The value of the "type" key is used to identify the specific function for
    recreating the original instance.
    """
    if _is_path(data):
        data = json.loads(pathlib.Path(data).read_text())

    if isinstance(data, str):
        data = json.loads(str(data))

    type_ = data.get("type", None) if hasattr(data, "get") else None
    if type_ is None:
        return data

    if type_ not in _deserialise_func_map:
        _import_provider(type_)

    func = _deserialise_func_map.get(type_)
    if func is None:
        msg = f"deserialising '{type_}' from json"
        raise NotImplementedError(msg)

    return func(data)


def get_class(provenance: str) -> type:
    """the class named by a fully qualified provenance string"""
    index = provenance.rfind(".")
    if index <= 0:
        msg = f"{provenance!r} is not a qualified class name"
        raise ValueError(msg)
    mod = import_module(provenance[:index])
    return getattr(mod, provenance[index + 1 :])
