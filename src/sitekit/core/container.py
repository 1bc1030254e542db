"""containers of sequences, and of aligned sequences stored as sites

Site containers store an alignment column by column. Sequences are built from
the columns on first request and cached until a column changes.
"""

from __future__ import annotations

import bisect
import contextlib
import json
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any, ClassVar

import numpy
from typing_extensions import Self

from sitekit.core.alphabet import AlphabetMismatchError, StateAlphabet
from sitekit.core.sequence import (
    ProbabilisticSequence,
    Sequence,
    SequenceError,
    SequenceMixin,
    SequenceNotAlignedError,
)
from sitekit.core.site import ProbabilisticSite, Site, SiteError, SiteMixin
from sitekit.core.symbol_list import SymbolList, SymbolListListener
from sitekit.util.deserialise import (
    deserialise_object,
    get_class,
    register_deserialiser,
)
from sitekit.util.misc import IndexOutOfBoundsError, check_index, get_object_provenance


class SequencedValuesContainerABC(ABC):
    """values organised by sequence, all over one alphabet"""

    comments: list[str]

    @property
    @abstractmethod
    def alphabet(self) -> StateAlphabet: ...

    @property
    @abstractmethod
    def num_sequences(self) -> int: ...

    @property
    @abstractmethod
    def sequence_keys(self) -> list[str]: ...

    @property
    @abstractmethod
    def sequence_names(self) -> list[str]: ...

    @abstractmethod
    def value_at(self, seq: str | int, site_pos: int) -> Any: ...  # noqa: ANN401

    @abstractmethod
    def state_value_at(self, site_pos: int, seq: str | int, state: int) -> float: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def create_empty_container(self) -> Self: ...


class SequenceContainerABC(SequencedValuesContainerABC):
    """sequences accessible by key or position"""

    @abstractmethod
    def sequence(self, seq: str | int) -> SequenceMixin: ...

    @abstractmethod
    def has_sequence(self, key: str) -> bool: ...

    @abstractmethod
    def add_sequence(self, seq: SequenceMixin, key: str | None = None) -> None: ...

    @abstractmethod
    def set_sequence(self, seq_id: str | int, seq: SequenceMixin) -> None: ...

    @abstractmethod
    def remove_sequence(self, seq_id: str | int) -> SequenceMixin: ...

    @abstractmethod
    def delete_sequence(self, seq_id: str | int) -> None: ...

    def iter_seqs(self) -> Iterator[SequenceMixin]:
        for i in range(self.num_sequences):
            yield self.sequence(i)


class SiteContainerABC(SequenceContainerABC):
    """aligned sequences that are also accessible as sites"""

    @property
    @abstractmethod
    def num_sites(self) -> int: ...

    @abstractmethod
    def site(self, pos: int) -> SiteMixin: ...

    @abstractmethod
    def add_site(self, site: SiteMixin, check_coordinate: bool = True) -> None: ...

    @abstractmethod
    def set_site(
        self, pos: int, site: SiteMixin, check_coordinate: bool = True
    ) -> None: ...

    @abstractmethod
    def remove_site(self, pos: int) -> SiteMixin: ...

    @abstractmethod
    def delete_sites(self, pos: int, length: int) -> None: ...

    @abstractmethod
    def reindex_sites(self) -> None: ...

    def delete_site(self, pos: int) -> None:
        self.delete_sites(pos, 1)

    def iter_sites(self) -> Iterator[SiteMixin]:
        for pos in range(self.num_sites):
            yield self.site(pos)


class _OwnedSiteListener(SymbolListListener):
    """attached to every site held by a VectorSiteContainer"""

    removable = False
    shared = True
    always_notified = True

    def __init__(self, container: VectorSiteContainer) -> None:
        self.container = container

    def _refuse_resize(self, event: Any) -> None:  # noqa: ANN401
        if not self.container._restructuring:
            msg = (
                "cannot change the length of a site held by a container,"
                " use the container methods"
            )
            raise SiteError(msg)

    before_sequence_inserted = _refuse_resize
    before_sequence_deleted = _refuse_resize

    def before_sequence_changed(self, event: Any) -> None:  # noqa: ANN401
        if not self.container._restructuring:
            msg = "cannot replace the content of a site held by a container, use set_site"
            raise SiteError(msg)

    def after_sequence_substituted(self, event: Any) -> None:  # noqa: ANN401
        if not self.container._restructuring:
            self.container._invalidate_sequences()


class _ReadOnlySequenceListener(SymbolListListener):
    """attached to sequences built from the sites of a container"""

    removable = False
    shared = True
    always_notified = True

    def _refuse(self, event: Any) -> None:  # noqa: ANN401
        msg = (
            f"{event.symbol_list.name!r} was built from a site container and"
            " is read only, edit the container or a copy"
        )
        raise SequenceError(msg)

    before_sequence_changed = _refuse
    before_sequence_inserted = _refuse
    before_sequence_deleted = _refuse
    before_sequence_substituted = _refuse


_READ_ONLY = _ReadOnlySequenceListener()


def _release(symbols: SymbolList, listener: SymbolListListener) -> None:
    symbols._discard_listener(listener)


class _AlignedBase(SiteContainerABC):
    """sequence identity and the sequence cache shared by site containers"""

    _site_class: ClassVar[type] = Site
    _sequence_class: ClassVar[type] = Sequence

    def _init_sequences(self, alphabet: StateAlphabet) -> None:
        self._alphabet = alphabet
        self._keys: list[str] = []
        self._key_index: dict[str, int] = {}
        self._names: list[str] = []
        self._seq_comments: list[list[str]] = []
        self._seq_cache: list[SequenceMixin | None] = []
        self.comments: list[str] = []

    @abstractmethod
    def _column(self, site_pos: int) -> numpy.ndarray:
        """the stored content of the site at site_pos"""

    @property
    def alphabet(self) -> StateAlphabet:
        return self._alphabet

    @property
    def num_sequences(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(num_sequences={self.num_sequences},"
            f" num_sites={self.num_sites}, alphabet={self._alphabet.alphabet_type!r})"
        )

    # sequence identity
    @property
    def sequence_keys(self) -> list[str]:
        return list(self._keys)

    def set_sequence_keys(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        self._check_new_keys(keys)
        self._keys = keys
        self._reindex_keys()

    @property
    def sequence_names(self) -> list[str]:
        return list(self._names)

    def set_sequence_names(self, names: Iterable[str], update_keys: bool = True) -> None:
        names = list(names)
        if update_keys:
            self._check_new_keys(names)
        elif len(names) != self.num_sequences:
            msg = f"{len(names)} names for {self.num_sequences} sequences"
            raise SequenceError(msg)
        self._names = names
        if update_keys:
            self._keys = list(names)
            self._reindex_keys()
        self._invalidate_sequences()

    def _check_new_keys(self, keys: list[str]) -> None:
        if len(keys) != self.num_sequences:
            msg = f"{len(keys)} keys for {self.num_sequences} sequences"
            raise SequenceError(msg)
        if len(set(keys)) != len(keys):
            msg = "sequence keys must be unique"
            raise SequenceError(msg)

    def _reindex_keys(self) -> None:
        self._key_index = {key: i for i, key in enumerate(self._keys)}

    def has_sequence(self, key: str) -> bool:
        return key in self._key_index

    def sequence_position(self, key: str) -> int:
        try:
            return self._key_index[key]
        except KeyError:
            msg = f"no sequence with key {key!r}"
            raise SequenceError(msg) from None

    def _seq_pos(self, seq_id: str | int) -> int:
        if isinstance(seq_id, str):
            return self.sequence_position(seq_id)
        return check_index(seq_id, self.num_sequences, "sequence position")

    def sequence_comments(self, seq_id: str | int) -> list[str]:
        return list(self._seq_comments[self._seq_pos(seq_id)])

    def set_sequence_comments(self, seq_id: str | int, comments: Iterable[str]) -> None:
        pos = self._seq_pos(seq_id)
        self._seq_comments[pos] = list(comments)
        self._invalidate_sequences(pos)

    def _add_identities(self, num: int) -> None:
        """default identities for the first num sequences of an empty container"""
        self._keys = [f"Seq_{i}" for i in range(num)]
        self._names = list(self._keys)
        self._seq_comments = [[] for _ in range(num)]
        self._seq_cache = [None] * num
        self._reindex_keys()

    # sequence view
    def _build_sequence(self, pos: int) -> SequenceMixin:
        columns = [self._column(j)[pos] for j in range(self.num_sites)]
        content = numpy.stack(columns) if columns else None
        return self._sequence_class(
            self._names[pos],
            content,
            alphabet=self._alphabet,
            comments=self._seq_comments[pos],
        )

    def sequence(self, seq_id: str | int) -> SequenceMixin:
        """the sequence at seq_id, built from the sites on first access

        Notes
        -----
        The result is read only and is replaced once the sites change.
        """
        pos = self._seq_pos(seq_id)
        cached = self._seq_cache[pos]
        if cached is None:
            cached = self._build_sequence(pos)
            cached.add_listener(_READ_ONLY)
            self._seq_cache[pos] = cached
        return cached

    def _invalidate_sequences(self, pos: int | None = None) -> None:
        positions = range(len(self._seq_cache)) if pos is None else [pos]
        for i in positions:
            cached = self._seq_cache[i]
            if cached is not None:
                _release(cached, _READ_ONLY)
                self._seq_cache[i] = None

    # cells
    def value_at(self, seq: str | int, site_pos: int) -> Any:  # noqa: ANN401
        return self.site_value(site_pos, self._seq_pos(seq))

    def site_value(self, site_pos: int, seq_pos: int) -> Any:  # noqa: ANN401
        site_pos = check_index(site_pos, self.num_sites, "site position")
        value = self._column(site_pos)[seq_pos]
        return value.copy() if value.ndim else int(value)

    def state_value_at(self, site_pos: int, seq: str | int, state: int) -> float:
        """probability that the cell at site_pos of seq is the resolved state"""
        return self.site(site_pos).state_value_at(self._seq_pos(seq), state)

    # sites
    def _check_site(
        self,
        site: SiteMixin,
        check_coordinate: bool,
        coordinates: list[int],
        exclude: int | None = None,
    ) -> None:
        if not isinstance(site, self._site_class):
            msg = f"expected {self._site_class.__name__}, not {type(site).__name__}"
            raise TypeError(msg)
        if site.alphabet != self._alphabet:
            raise AlphabetMismatchError("site", self._alphabet, site.alphabet)
        if (self.num_sequences or self.num_sites) and len(site) != self.num_sequences:
            msg = f"site length {len(site)} != number of sequences {self.num_sequences}"
            raise SiteError(msg)
        if check_coordinate:
            for i, coord in enumerate(coordinates):
                if i != exclude and coord == site.coordinate:
                    msg = f"a site with coordinate {site.coordinate} is present"
                    raise SiteError(msg)

    def _check_sequence(self, seq: SequenceMixin) -> None:
        if not isinstance(seq, self._sequence_class):
            msg = f"expected {self._sequence_class.__name__}, not {type(seq).__name__}"
            raise TypeError(msg)
        if seq.alphabet != self._alphabet:
            raise AlphabetMismatchError("sequence", self._alphabet, seq.alphabet)

    def to_array(self) -> numpy.ndarray:
        """sequences as rows, sites as columns"""
        if not self.num_sites:
            shape = (self.num_sequences, 0)
            if self._site_class is ProbabilisticSite:
                shape = (*shape, self._alphabet.size)
            return numpy.empty(shape)
        return numpy.stack(
            [self._column(j) for j in range(self.num_sites)], axis=1
        )

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(self),
            "alphabet": self._alphabet.to_rich_dict(),
            "sequence_keys": list(self._keys),
            "sequence_names": list(self._names),
            "sequence_comments": [list(c) for c in self._seq_comments],
            "comments": list(self.comments),
            "coordinates": self.site_coordinates,
            "sites": [self._column(j).tolist() for j in range(self.num_sites)],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_rich_dict())

    def _restore_identities(self, data: dict) -> None:
        self._names = list(data["sequence_names"])
        self._seq_comments = [list(c) for c in data["sequence_comments"]]
        self.comments = list(data["comments"])


class VectorSiteContainer(_AlignedBase):
    """an alignment stored as a list of sites

    Parameters
    ----------
    sites
        all of the same length, the number of sequences
    alphabet
        shared by every site
    sequence_keys
        one per sequence, defaults to ``Seq_0``, ``Seq_1``, ... Without sites,
        creates that many empty sequences.
    check_coordinates
        whether to refuse sites with duplicated coordinates, scanning all
        sites for each added one

    Notes
    -----
    Sites added to the container are held, not copied. Editing a held site
    through its own methods is allowed when its length is unchanged. A site
    can belong to only one container.
    """

    def __init__(
        self,
        sites: Iterable[Site] | None = None,
        *,
        alphabet: StateAlphabet,
        sequence_keys: Iterable[str] | None = None,
        check_coordinates: bool = True,
    ) -> None:
        self._init_sequences(alphabet)
        self._sites: list[Site] = []
        self._restructuring = False
        self._ownership = _OwnedSiteListener(self)
        if sequence_keys is not None:
            keys = list(sequence_keys)
            self._add_identities(len(keys))
            self.set_sequence_names(keys)
        for site in sites or ():
            self.add_site(site, check_coordinate=check_coordinates)

    @classmethod
    def from_sequences(
        cls,
        seqs: Iterable[SequenceMixin],
        *,
        alphabet: StateAlphabet,
    ) -> Self:
        """an alignment of seqs, keyed by their names"""
        new = cls(alphabet=alphabet)
        for seq in seqs:
            new.add_sequence(seq)
        return new

    @classmethod
    def from_size(cls, num_sequences: int, *, alphabet: StateAlphabet) -> Self:
        """num_sequences empty sequences named Seq_0, Seq_1, ..."""
        new = cls(alphabet=alphabet)
        new._add_identities(num_sequences)
        return new

    def _column(self, site_pos: int) -> numpy.ndarray:
        return self._sites[site_pos]._content

    @contextlib.contextmanager
    def _restructure(self) -> Iterator[None]:
        self._restructuring = True
        try:
            yield
        finally:
            self._restructuring = False

    def _take(self, site: Site) -> None:
        site.add_listener(self._ownership)

    def _give_back(self, site: Site) -> Site:
        _release(site, self._ownership)
        return site

    def _is_held(self, site: Site) -> bool:
        return any(
            isinstance(site.get_listener(i), _OwnedSiteListener)
            for i in range(site.num_listeners)
        )

    def _check_free(self, site: Site) -> None:
        if self._is_held(site):
            msg = "site already belongs to a container, add a copy"
            raise SiteError(msg)

    # sites
    @property
    def num_sites(self) -> int:
        return len(self._sites)

    def site(self, pos: int) -> Site:
        return self._sites[check_index(pos, self.num_sites, "site position")]

    @property
    def site_coordinates(self) -> list[int]:
        return [site.coordinate for site in self._sites]

    def set_site_coordinates(self, coordinates: Iterable[int]) -> None:
        coordinates = list(coordinates)
        if len(coordinates) != self.num_sites:
            msg = f"{len(coordinates)} coordinates for {self.num_sites} sites"
            raise SiteError(msg)
        for site, coord in zip(self._sites, coordinates, strict=True):
            site.coordinate = coord

    def add_site(self, site: Site, check_coordinate: bool = True) -> None:
        """appends site

        Raises
        ------
        SiteError
            if the site length differs from the number of sequences, if
            check_coordinate is True and the coordinate is already present, or
            if the site belongs to a container
        AlphabetMismatchError
            if the site alphabet differs
        """
        self.insert_site(self.num_sites, site, check_coordinate)

    def insert_site(self, pos: int, site: Site, check_coordinate: bool = True) -> None:
        if not 0 <= pos <= self.num_sites:
            raise IndexOutOfBoundsError("site position", pos, 0, self.num_sites)
        self._check_site(site, check_coordinate, self.site_coordinates)
        self._check_free(site)
        if not self.num_sequences and not self.num_sites:
            self._add_identities(len(site))
        self._take(site)
        self._sites.insert(pos, site)
        self._invalidate_sequences()

    def set_site(self, pos: int, site: Site, check_coordinate: bool = True) -> None:
        pos = check_index(pos, self.num_sites, "site position")
        self._check_site(site, check_coordinate, self.site_coordinates, exclude=pos)
        self._check_free(site)
        self._give_back(self._sites[pos])
        self._take(site)
        self._sites[pos] = site
        self._invalidate_sequences()

    def remove_site(self, pos: int) -> Site:
        """removes and returns the site at pos, it no longer belongs to the container"""
        pos = check_index(pos, self.num_sites, "site position")
        site = self._sites.pop(pos)
        self._invalidate_sequences()
        return self._give_back(site)

    def delete_sites(self, pos: int, length: int) -> None:
        pos = check_index(pos, self.num_sites, "site position")
        if length < 0 or pos + length > self.num_sites:
            raise IndexOutOfBoundsError(
                "site deletion end", pos + length, 0, self.num_sites
            )
        for site in self._sites[pos : pos + length]:
            self._give_back(site)
        del self._sites[pos : pos + length]
        self._invalidate_sequences()

    def reindex_sites(self) -> None:
        """sets the site coordinates to 1, 2, ... in their current order"""
        for i, site in enumerate(self._sites, start=1):
            site.coordinate = i

    # sequences
    def _realloc(self, num_sites: int) -> None:
        for i in range(num_sites):
            site = self._site_class(alphabet=self._alphabet, coordinate=i + 1)
            self._take(site)
            self._sites.append(site)

    def add_sequence(self, seq: SequenceMixin, key: str | None = None) -> None:
        self.insert_sequence(self.num_sequences, seq, key)

    def insert_sequence(
        self, pos: int, seq: SequenceMixin, key: str | None = None
    ) -> None:
        """inserts the content of seq as the row at pos

        Raises
        ------
        SequenceNotAlignedError
            if the length of seq differs from the number of sites
        SequenceError
            if key, which defaults to the name of seq, is already present
        """
        if not 0 <= pos <= self.num_sequences:
            raise IndexOutOfBoundsError("sequence position", pos, 0, self.num_sequences)
        self._check_sequence(seq)
        key = seq.name if key is None else key
        if key in self._key_index:
            msg = f"a sequence with key {key!r} is present"
            raise SequenceError(msg)
        empty = not self.num_sequences and not self.num_sites
        if not empty and len(seq) != self.num_sites:
            msg = f"sequence length {len(seq)} != number of sites {self.num_sites}"
            raise SequenceNotAlignedError(msg)

        if empty:
            self._realloc(len(seq))
        content = seq.get_content()
        with self._restructure():
            for site, value in zip(self._sites, content, strict=True):
                site.add_element(value, pos)
        self._keys.insert(pos, key)
        self._names.insert(pos, seq.name)
        self._seq_comments.insert(pos, list(seq.comments))
        self._seq_cache.insert(pos, None)
        self._reindex_keys()

    def set_sequence(self, seq_id: str | int, seq: SequenceMixin) -> None:
        """replaces the row at seq_id with the content of seq, keeping its key"""
        pos = self._seq_pos(seq_id)
        self._check_sequence(seq)
        if len(seq) != self.num_sites:
            msg = f"sequence length {len(seq)} != number of sites {self.num_sites}"
            raise SequenceNotAlignedError(msg)

        content = seq.get_content()
        with self._restructure():
            for site, value in zip(self._sites, content, strict=True):
                site.set_element(pos, value)
        self._names[pos] = seq.name
        self._seq_comments[pos] = list(seq.comments)
        self._invalidate_sequences(pos)

    def remove_sequence(self, seq_id: str | int) -> SequenceMixin:
        """removes the row at seq_id and returns it as a sequence"""
        pos = self._seq_pos(seq_id)
        seq = self._build_sequence(pos)
        self._delete_row(pos)
        return seq

    def delete_sequence(self, seq_id: str | int) -> None:
        self._delete_row(self._seq_pos(seq_id))

    def _delete_row(self, pos: int) -> None:
        with self._restructure():
            for site in self._sites:
                site.delete_element(pos)
        self._invalidate_sequences(pos)
        del self._seq_cache[pos]
        del self._keys[pos]
        del self._names[pos]
        del self._seq_comments[pos]
        self._reindex_keys()

    # cells
    def set_value_at(self, seq: str | int, site_pos: int, value: Any) -> None:  # noqa: ANN401
        pos = self._seq_pos(seq)
        site = self.site(site_pos)
        with self._restructure():
            site.set_element(pos, value)
        self._invalidate_sequences(pos)

    # whole container
    def clear(self) -> None:
        for site in self._sites:
            self._give_back(site)
        self._invalidate_sequences()
        self._sites = []
        comments = self.comments
        self._init_sequences(self._alphabet)
        self.comments = comments

    def create_empty_container(self) -> Self:
        return self.__class__(alphabet=self._alphabet)

    def copy(self) -> Self:
        """a container holding copies of the sites"""
        new = self.__class__(
            [site.copy() for site in self._sites],
            alphabet=self._alphabet,
            check_coordinates=False,
        )
        if not self.num_sites:
            new._add_identities(self.num_sequences)
        new._keys = list(self._keys)
        new._reindex_keys()
        new._names = list(self._names)
        new._seq_comments = [list(c) for c in self._seq_comments]
        new.comments = list(self.comments)
        return new


class ProbabilisticVectorSiteContainer(VectorSiteContainer):
    """an alignment of likelihood vectors stored as a list of sites"""

    _site_class = ProbabilisticSite
    _sequence_class = ProbabilisticSequence


class CompressedVectorSiteContainer(_AlignedBase):
    """an alignment storing each distinct site once

    Each position refers to a stored unique site, positions keep their own
    coordinate. ``site(pos)`` returns a copy.

    Notes
    -----
    Operations that add or remove sequences raise NotImplementedError,
    they would require decompressing the alignment.
    """

    def __init__(
        self,
        sites: Iterable[Site] | None = None,
        *,
        alphabet: StateAlphabet,
        sequence_keys: Iterable[str] | None = None,
        check_coordinates: bool = True,
    ) -> None:
        self._init_sequences(alphabet)
        self._sites: list[Site] = []
        self._index: list[int] = []
        self._coordinates: list[int] = []
        if sequence_keys is not None:
            keys = list(sequence_keys)
            self._add_identities(len(keys))
            self.set_sequence_names(keys)
        for site in sites or ():
            self.add_site(site, check_coordinate=check_coordinates)

    @classmethod
    def from_size(cls, num_sequences: int, *, alphabet: StateAlphabet) -> Self:
        new = cls(alphabet=alphabet)
        new._add_identities(num_sequences)
        return new

    @classmethod
    def from_container(cls, container: _AlignedBase) -> Self:
        """a compressed copy of an alignment"""
        new = cls(
            container.iter_sites(),
            alphabet=container.alphabet,
            check_coordinates=False,
        )
        if not container.num_sites:
            new._add_identities(container.num_sequences)
        new.set_sequence_keys(container.sequence_keys)
        new._names = container.sequence_names
        new._seq_comments = [
            container.sequence_comments(i) for i in range(container.num_sequences)
        ]
        new.comments = list(container.comments)
        return new

    def _column(self, site_pos: int) -> numpy.ndarray:
        return self._sites[self._index[site_pos]]._content

    @property
    def num_sites(self) -> int:
        return len(self._index)

    @property
    def num_unique_sites(self) -> int:
        return len(self._sites)

    def unique_site_index(self, pos: int) -> int:
        """the slot of the stored site used at pos"""
        return self._index[check_index(pos, self.num_sites, "site position")]

    def site(self, pos: int) -> Site:
        pos = check_index(pos, self.num_sites, "site position")
        site = self._sites[self._index[pos]].copy()
        site.coordinate = self._coordinates[pos]
        return site

    @property
    def site_coordinates(self) -> list[int]:
        return list(self._coordinates)

    def set_site_coordinates(self, coordinates: Iterable[int]) -> None:
        coordinates = list(coordinates)
        if len(coordinates) != self.num_sites:
            msg = f"{len(coordinates)} coordinates for {self.num_sites} sites"
            raise SiteError(msg)
        self._coordinates = coordinates

    def _slot_for(self, content: numpy.ndarray, exclude: int | None = None) -> int | None:
        for slot, stored in enumerate(self._sites):
            if slot != exclude and numpy.array_equal(stored._content, content):
                return slot
        return None

    def _store(self, site: Site) -> int:
        slot = self._slot_for(site._content)
        if slot is None:
            stored = self._site_class(
                site.get_content(), alphabet=self._alphabet, coordinate=0
            )
            self._sites.append(stored)
            slot = len(self._sites) - 1
        return slot

    def _collect_unused(self) -> None:
        used = sorted(set(self._index))
        if len(used) == len(self._sites):
            return
        remap = {old: new for new, old in enumerate(used)}
        self._sites = [self._sites[old] for old in used]
        self._index = [remap[slot] for slot in self._index]

    def add_site(self, site: Site, check_coordinate: bool = True) -> None:
        """appends site, storing its content only if no stored site matches"""
        self.insert_site(self.num_sites, site, check_coordinate)

    def insert_site(self, pos: int, site: Site, check_coordinate: bool = True) -> None:
        if not 0 <= pos <= self.num_sites:
            raise IndexOutOfBoundsError("site position", pos, 0, self.num_sites)
        self._check_site(site, check_coordinate, self._coordinates)
        if not self.num_sequences and not self.num_sites:
            self._add_identities(len(site))
        slot = self._store(site)
        self._index.insert(pos, slot)
        self._coordinates.insert(pos, site.coordinate)
        self._invalidate_sequences()

    def set_site(self, pos: int, site: Site, check_coordinate: bool = True) -> None:
        pos = check_index(pos, self.num_sites, "site position")
        self._check_site(site, check_coordinate, self._coordinates, exclude=pos)
        self._index[pos] = self._store(site)
        self._coordinates[pos] = site.coordinate
        self._collect_unused()
        self._invalidate_sequences()

    def remove_site(self, pos: int) -> Site:
        site = self.site(pos)
        del self._index[pos]
        del self._coordinates[pos]
        self._collect_unused()
        self._invalidate_sequences()
        return site

    def delete_sites(self, pos: int, length: int) -> None:
        pos = check_index(pos, self.num_sites, "site position")
        if length < 0 or pos + length > self.num_sites:
            raise IndexOutOfBoundsError(
                "site deletion end", pos + length, 0, self.num_sites
            )
        del self._index[pos : pos + length]
        del self._coordinates[pos : pos + length]
        self._collect_unused()
        self._invalidate_sequences()

    def reindex_sites(self) -> None:
        self._coordinates = list(range(1, self.num_sites + 1))

    def set_value_at(self, seq: str | int, site_pos: int, value: Any) -> None:  # noqa: ANN401
        """sets one cell, the column is matched again against the stored sites"""
        seq_pos = self._seq_pos(seq)
        site = self.site(site_pos)
        site.set_element(seq_pos, value)
        self._index[site_pos] = self._store(site)
        self._collect_unused()
        self._invalidate_sequences(seq_pos)

    def _unsupported(self, name: str) -> NotImplementedError:
        msg = f"{name} is not supported by {self.__class__.__name__}"
        return NotImplementedError(msg)

    def add_sequence(self, seq: SequenceMixin, key: str | None = None) -> None:
        raise self._unsupported("add_sequence")

    def insert_sequence(
        self, pos: int, seq: SequenceMixin, key: str | None = None
    ) -> None:
        raise self._unsupported("insert_sequence")

    def set_sequence(self, seq_id: str | int, seq: SequenceMixin) -> None:
        raise self._unsupported("set_sequence")

    def remove_sequence(self, seq_id: str | int) -> SequenceMixin:
        raise self._unsupported("remove_sequence")

    def delete_sequence(self, seq_id: str | int) -> None:
        raise self._unsupported("delete_sequence")

    def clear(self) -> None:
        self._invalidate_sequences()
        self._sites = []
        self._index = []
        self._coordinates = []
        comments = self.comments
        self._init_sequences(self._alphabet)
        self.comments = comments

    def create_empty_container(self) -> Self:
        return self.__class__(alphabet=self._alphabet)

    def copy(self) -> Self:
        return self.__class__.from_container(self)


class MapSequenceContainer(SequenceContainerABC):
    """sequences stored by key, keys kept in sorted order

    Sequences need not have the same length. Added sequences are stored, not
    copied.
    """

    def __init__(
        self,
        seqs: Iterable[SequenceMixin] | None = None,
        *,
        alphabet: StateAlphabet,
    ) -> None:
        self._alphabet = alphabet
        self._keys: list[str] = []
        self._seqs: dict[str, SequenceMixin] = {}
        self.comments: list[str] = []
        for seq in seqs or ():
            self.add_sequence(seq)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(num_sequences={self.num_sequences},"
            f" alphabet={self._alphabet.alphabet_type!r})"
        )

    @property
    def alphabet(self) -> StateAlphabet:
        return self._alphabet

    @property
    def num_sequences(self) -> int:
        return len(self._keys)

    @property
    def sequence_keys(self) -> list[str]:
        return list(self._keys)

    @property
    def sequence_names(self) -> list[str]:
        return [self._seqs[key].name for key in self._keys]

    def has_sequence(self, key: str) -> bool:
        return key in self._seqs

    def _key(self, seq_id: str | int) -> str:
        if isinstance(seq_id, str):
            if seq_id not in self._seqs:
                msg = f"no sequence with key {seq_id!r}"
                raise SequenceError(msg)
            return seq_id
        return self._keys[check_index(seq_id, self.num_sequences, "sequence position")]

    def sequence(self, seq_id: str | int) -> SequenceMixin:
        return self._seqs[self._key(seq_id)]

    def _check_sequence(self, seq: SequenceMixin) -> None:
        if seq.alphabet != self._alphabet:
            raise AlphabetMismatchError("sequence", self._alphabet, seq.alphabet)

    def add_sequence(self, seq: SequenceMixin, key: str | None = None) -> None:
        self._check_sequence(seq)
        key = seq.name if key is None else key
        if key in self._seqs:
            msg = f"a sequence with key {key!r} is present"
            raise SequenceError(msg)
        bisect.insort(self._keys, key)
        self._seqs[key] = seq

    def set_sequence(self, seq_id: str | int, seq: SequenceMixin) -> None:
        key = self._key(seq_id)
        self._check_sequence(seq)
        self._seqs[key] = seq

    def remove_sequence(self, seq_id: str | int) -> SequenceMixin:
        key = self._key(seq_id)
        self._keys.remove(key)
        return self._seqs.pop(key)

    def delete_sequence(self, seq_id: str | int) -> None:
        self.remove_sequence(seq_id)

    def value_at(self, seq: str | int, site_pos: int) -> Any:  # noqa: ANN401
        return self.sequence(seq)[site_pos]

    def state_value_at(self, site_pos: int, seq: str | int, state: int) -> float:
        return self.sequence(seq).state_value_at(site_pos, state)

    def clear(self) -> None:
        self._keys = []
        self._seqs = {}

    def create_empty_container(self) -> Self:
        return self.__class__(alphabet=self._alphabet)

    def copy(self) -> Self:
        new = self.__class__(alphabet=self._alphabet)
        for key in self._keys:
            new.add_sequence(self._seqs[key].copy(), key)
        new.comments = list(self.comments)
        return new

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(self),
            "alphabet": self._alphabet.to_rich_dict(),
            "sequence_keys": list(self._keys),
            "sequences": [self._seqs[key].to_rich_dict() for key in self._keys],
            "comments": list(self.comments),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_rich_dict())


@register_deserialiser(
    get_object_provenance(VectorSiteContainer),
    get_object_provenance(ProbabilisticVectorSiteContainer),
    get_object_provenance(CompressedVectorSiteContainer),
)
def deserialise_site_container(data: dict) -> _AlignedBase:
    klass = get_class(data["type"])
    alphabet = deserialise_object(data["alphabet"])
    site_class = klass._site_class
    sites = [
        site_class(content, alphabet=alphabet, coordinate=coord)
        for content, coord in zip(data["sites"], data["coordinates"], strict=True)
    ]
    keys = data["sequence_keys"]
    result = klass(sites, alphabet=alphabet, check_coordinates=False)
    if not sites:
        result._add_identities(len(keys))
    result.set_sequence_keys(keys)
    result._restore_identities(data)
    return result


@register_deserialiser(get_object_provenance(MapSequenceContainer))
def deserialise_map_container(data: dict) -> MapSequenceContainer:
    alphabet = deserialise_object(data["alphabet"])
    result = MapSequenceContainer(alphabet=alphabet)
    for key, seq in zip(data["sequence_keys"], data["sequences"], strict=True):
        result.add_sequence(deserialise_object(seq), key)
    result.comments = list(data["comments"])
    return result
