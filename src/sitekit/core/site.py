from __future__ import annotations

import json
from typing import Any

from sitekit.core.alphabet import StateAlphabet
from sitekit.core.symbol_list import IntSymbolList, ProbabilisticSymbolList
from sitekit.util.deserialise import (
    deserialise_object,
    get_class,
    register_deserialiser,
)
from sitekit.util.misc import get_object_provenance


class SiteError(ValueError): ...


class EmptySiteError(SiteError): ...


class SiteMixin:
    """the coordinate of an alignment column"""

    coordinate: int

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.to_string()!r},"
            f" coordinate={self.coordinate})"
        )

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(self),
            "content": self.get_content().tolist(),
            "alphabet": self.alphabet.to_rich_dict(),
            "coordinate": self.coordinate,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_rich_dict())


class Site(SiteMixin, IntSymbolList):
    """one column of an alignment of discrete states

    Parameters
    ----------
    content
        one state per sequence
    alphabet
        all content is validated against it
    coordinate
        position tag, independent of where the site sits in a container
    """

    def __init__(
        self,
        content: Any = None,  # noqa: ANN401
        *,
        alphabet: StateAlphabet,
        coordinate: int = 0,
    ) -> None:
        self.coordinate = coordinate
        super().__init__(content, alphabet=alphabet)


class ProbabilisticSite(SiteMixin, ProbabilisticSymbolList):
    """one column of likelihood vectors"""

    def __init__(
        self,
        content: Any = None,  # noqa: ANN401
        *,
        alphabet: StateAlphabet,
        coordinate: int = 0,
    ) -> None:
        self.coordinate = coordinate
        super().__init__(content, alphabet=alphabet)


@register_deserialiser(
    get_object_provenance(Site),
    get_object_provenance(ProbabilisticSite),
)
def deserialise_site(data: dict) -> Site | ProbabilisticSite:
    klass = get_class(data["type"])
    alphabet = deserialise_object(data["alphabet"])
    return klass(data["content"], alphabet=alphabet, coordinate=data["coordinate"])
