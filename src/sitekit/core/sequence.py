from __future__ import annotations

import json
import warnings
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import numpy
import numpy.typing as npt
from typing_extensions import Self

from sitekit.core.alphabet import (
    AlphabetABC,
    AlphabetMismatchError,
    StateAlphabet,
    get_alphabet,
)
from sitekit.core.symbol_list import (
    DeletionEvent,
    EditionEvent,
    InsertionEvent,
    IntSymbolList,
    ProbabilisticSymbolList,
    SymbolListListener,
)
from sitekit.util.deserialise import (
    deserialise_object,
    get_class,
    register_deserialiser,
)
from sitekit.util.misc import DimensionError, check_index, get_object_provenance


class SequenceError(ValueError): ...


class SequenceNotAlignedError(SequenceError): ...


class EmptySequenceError(SequenceError): ...


class SequenceAnnotation(SymbolListListener, ABC):
    """a track of per position data kept in step with a sequence"""

    annotation_type: str

    @abstractmethod
    def init(self, seq: SequenceMixin) -> None:
        """resets to default values sized to seq"""

    @abstractmethod
    def is_valid_with(self, seq: SequenceMixin, raise_error: bool = True) -> bool: ...

    @abstractmethod
    def merge(self, other: SequenceAnnotation) -> bool:
        """appends other, returns False if other is of a different kind"""

    @abstractmethod
    def get_part_annotation(self, pos: int, length: int) -> Self: ...


class SequenceQuality(SequenceAnnotation):
    """integer quality scores, one per position

    New positions get ``DEFAULT_QUALITY_VALUE``.
    """

    annotation_type = "QualityScore"
    DEFAULT_QUALITY_VALUE = 20

    def __init__(
        self,
        scores: Iterable[int] | None = None,
        *,
        size: int = 0,
        removable: bool = True,
    ) -> None:
        if scores is None:
            self._scores = numpy.full(size, self.DEFAULT_QUALITY_VALUE, dtype=int)
        else:
            self._scores = numpy.array(list(scores), dtype=int)
        self.removable = removable

    def __len__(self) -> int:
        return len(self._scores)

    def clone(self) -> Self:
        new = SequenceQuality(self._scores, removable=self.removable)
        return new

    def init(self, seq: SequenceMixin) -> None:
        self._scores = numpy.full(len(seq), self.DEFAULT_QUALITY_VALUE, dtype=int)

    def is_valid_with(self, seq: SequenceMixin, raise_error: bool = True) -> bool:
        if len(self._scores) == len(seq):
            return True
        if raise_error:
            msg = (
                f"quality scores length {len(self._scores)}"
                f" != sequence length {len(seq)}"
            )
            raise DimensionError(msg)
        return False

    @property
    def scores(self) -> npt.NDArray[numpy.int_]:
        return self._scores.copy()

    def set_scores(self, scores: Iterable[int]) -> None:
        scores = numpy.array(list(scores), dtype=int)
        if len(scores) != len(self._scores):
            msg = f"{len(scores)} scores provided, {len(self._scores)} required"
            raise DimensionError(msg)
        self._scores = scores

    def get_score(self, pos: int) -> int:
        return int(self._scores[check_index(pos, len(self._scores), "quality")])

    def set_score(self, pos: int, score: int) -> None:
        self._scores[check_index(pos, len(self._scores), "quality")] = score

    def after_sequence_changed(self, event: EditionEvent) -> None:
        new_size = len(event.symbol_list)
        old_size = len(self._scores)
        if new_size < old_size:
            self._scores = self._scores[:new_size].copy()
        elif new_size > old_size:
            extra = numpy.full(new_size - old_size, self.DEFAULT_QUALITY_VALUE)
            self._scores = numpy.concatenate([self._scores, extra])

    def after_sequence_inserted(self, event: InsertionEvent) -> None:
        extra = numpy.full(event.length, self.DEFAULT_QUALITY_VALUE)
        self._scores = numpy.insert(self._scores, event.position, extra)

    def after_sequence_deleted(self, event: DeletionEvent) -> None:
        self._scores = numpy.delete(
            self._scores, slice(event.position, event.position + event.length)
        )

    def merge(self, other: SequenceAnnotation) -> bool:
        if not isinstance(other, SequenceQuality):
            return False
        self._scores = numpy.concatenate([self._scores, other._scores])
        return True

    def get_part_annotation(self, pos: int, length: int) -> Self:
        return SequenceQuality(
            self._scores[pos : pos + length], removable=self.removable
        )


class SequenceMixin:
    """identity, comments and annotation tracks of a sequence"""

    name: str
    comments: list[str]
    _annotations: dict[str, SequenceAnnotation]

    def _init_identity(self, name: str, comments: Iterable[str] | None) -> None:
        if not isinstance(name, str):
            msg = f"sequence name must be a str, not {type(name).__name__}"
            raise TypeError(msg)
        self.name = name
        self.comments = list(comments or [])
        self._annotations = {}

    def __repr__(self) -> str:
        text = self.to_string()
        if len(text) > 20:
            text = f"{text[:10]}...{text[-5:]}"
        return f"{self.__class__.__name__}({self.name!r}, {text!r}, length={len(self)})"

    # annotations
    def add_annotation(self, annotation: SequenceAnnotation) -> None:
        annotation.is_valid_with(self)
        if annotation.annotation_type in self._annotations:
            msg = f"{self.name!r} already has a {annotation.annotation_type!r} annotation"
            raise SequenceError(msg)
        self.add_listener(annotation)
        self._annotations[annotation.annotation_type] = annotation

    def has_annotation(self, annotation_type: str) -> bool:
        return annotation_type in self._annotations

    def annotation(self, annotation_type: str) -> SequenceAnnotation:
        try:
            return self._annotations[annotation_type]
        except KeyError:
            msg = f"{self.name!r} has no {annotation_type!r} annotation"
            raise SequenceError(msg) from None

    @property
    def annotation_types(self) -> list[str]:
        return list(self._annotations)

    def remove_annotation(self, annotation_type: str) -> SequenceAnnotation:
        annotation = self.annotation(annotation_type)
        self.remove_listener(annotation)
        del self._annotations[annotation_type]
        return annotation

    def _after_edit(self) -> None:
        if not self.propagate_events:
            return
        for annotation_type, annotation in list(self._annotations.items()):
            if annotation.is_valid_with(self, raise_error=False):
                continue
            if not annotation.removable:
                annotation.is_valid_with(self)
            warnings.warn(
                f"{annotation_type!r} annotation dropped from {self.name!r},"
                " it no longer matches the sequence",
                UserWarning,
                stacklevel=3,
            )
            self._discard_listener(annotation)
            del self._annotations[annotation_type]

    def copy(self) -> Self:
        new = super().copy()
        new.comments = list(self.comments)
        new._annotations = {
            listener.annotation_type: listener
            for listener in new._listeners
            if isinstance(listener, SequenceAnnotation)
        }
        return new

    def merge(self, other: SequenceMixin) -> None:
        """appends the content and annotations of other

        Parameters
        ----------
        other
            must have the same name and alphabet. Annotations missing from
            other are filled with defaults, annotations only on other are
            ignored.
        """
        if other.alphabet != self.alphabet:
            raise AlphabetMismatchError("merge", self.alphabet, other.alphabet)
        if other.name != self.name:
            msg = f"cannot merge {other.name!r} into {self.name!r}"
            raise SequenceError(msg)

        parts = {}
        for annotation_type, annotation in self._annotations.items():
            if other.has_annotation(annotation_type):
                part = other.annotation(annotation_type)
            else:
                part = annotation.clone()
                part.init(other)
            if type(part) is not type(annotation):
                msg = f"cannot merge {annotation_type!r} annotations of different kind"
                raise SequenceError(msg)
            parts[annotation_type] = part

        self.propagate_events = False
        try:
            self.append(other.get_content())
        finally:
            self.propagate_events = True
        for annotation_type, part in parts.items():
            self._annotations[annotation_type].merge(part)
        self._after_edit()

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(self),
            "name": self.name,
            "content": self.get_content().tolist(),
            "alphabet": self.alphabet.to_rich_dict(),
            "comments": list(self.comments),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_rich_dict())


class Sequence(SequenceMixin, IntSymbolList):
    """a named list of states of a discrete alphabet

    Parameters
    ----------
    name
        the sequence identifier
    content
        a string split into states, a list of state strings or integer codes
    alphabet
        all content is validated against it
    comments
        free text
    """

    def __init__(
        self,
        name: str,
        content: Any = None,  # noqa: ANN401
        *,
        alphabet: StateAlphabet,
        comments: Iterable[str] | None = None,
    ) -> None:
        self._init_identity(name, comments)
        super().__init__(content, alphabet=alphabet)


class ProbabilisticSequence(SequenceMixin, ProbabilisticSymbolList):
    """a named list of likelihood vectors over the resolved states of an alphabet"""

    def __init__(
        self,
        name: str,
        content: Any = None,  # noqa: ANN401
        *,
        alphabet: StateAlphabet,
        comments: Iterable[str] | None = None,
    ) -> None:
        self._init_identity(name, comments)
        super().__init__(content, alphabet=alphabet)


class SequenceWithQuality(Sequence):
    """a sequence with a quality score at each position

    The quality track cannot be removed. Positions added without a score get
    ``SequenceQuality.DEFAULT_QUALITY_VALUE``.
    """

    def __init__(
        self,
        name: str,
        content: Any = None,  # noqa: ANN401
        qualities: Iterable[int] | None = None,
        *,
        alphabet: StateAlphabet,
        comments: Iterable[str] | None = None,
    ) -> None:
        super().__init__(name, content, alphabet=alphabet, comments=comments)
        if qualities is None:
            quality = SequenceQuality(size=len(self), removable=False)
        else:
            quality = SequenceQuality(qualities, removable=False)
        self.add_annotation(quality)

    @property
    def _quality(self) -> SequenceQuality:
        return self._annotations[SequenceQuality.annotation_type]

    @property
    def qualities(self) -> npt.NDArray[numpy.int_]:
        return self._quality.scores

    def set_qualities(self, qualities: Iterable[int]) -> None:
        self._quality.set_scores(qualities)

    def get_quality(self, pos: int) -> int:
        return self._quality.get_score(pos)

    def set_quality(self, pos: int, quality: int) -> None:
        self._quality.set_score(pos, quality)

    def append(self, values: Any, qualities: Iterable[int] | None = None) -> None:  # noqa: ANN401
        """appends values, with their quality scores if provided"""
        if qualities is None:
            super().append(values)
            return
        content = self._coerce(values)
        qualities = list(qualities)
        if len(qualities) != len(content):
            msg = f"{len(qualities)} quality scores for {len(content)} states"
            raise DimensionError(msg)
        start = len(self)
        self._insert(content, None)
        for offset, quality in enumerate(qualities):
            self._quality.set_score(start + offset, quality)

    def add_element(
        self,
        value: Any,  # noqa: ANN401
        pos: int | None = None,
        *,
        quality: int | None = None,
    ) -> None:
        pos = len(self) if pos is None else pos
        super().add_element(value, pos)
        if quality is not None:
            self._quality.set_score(pos, quality)

    def to_rich_dict(self) -> dict[str, Any]:
        data = super().to_rich_dict()
        data["qualities"] = self.qualities.tolist()
        return data


def make_seq(
    content: Any,  # noqa: ANN401
    *,
    name: str,
    alphabet: str | AlphabetABC,
    comments: Iterable[str] | None = None,
) -> Sequence:
    """returns a Sequence, alphabet can be a name known to get_alphabet"""
    return Sequence(name, content, alphabet=get_alphabet(alphabet), comments=comments)


@register_deserialiser(
    get_object_provenance(Sequence),
    get_object_provenance(ProbabilisticSequence),
    get_object_provenance(SequenceWithQuality),
)
def deserialise_sequence(data: dict) -> SequenceMixin:
    klass = get_class(data["type"])
    alphabet = deserialise_object(data["alphabet"])
    kwargs = {"alphabet": alphabet, "comments": data.get("comments")}
    if "qualities" in data:
        kwargs["qualities"] = data["qualities"]
    return klass(data["name"], data["content"], **kwargs)
