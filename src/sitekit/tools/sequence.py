"""functions operating on single sequences, or pairs of aligned sequences"""

from __future__ import annotations

import warnings
from typing import TypeVar

import numpy

from sitekit.core.alphabet import (
    DNA,
    GAP_CODE,
    PROTEIN,
    RNA,
    AlphabetError,
    AlphabetMismatchError,
    NucleicAlphabet,
    StateAlphabet,
)
from sitekit.core.sequence import (
    EmptySequenceError,
    Sequence,
    SequenceError,
    SequenceMixin,
    SequenceNotAlignedError,
    SequenceQuality,
)
from sitekit.util.misc import IndexOutOfBoundsError

SeqType = TypeVar("SeqType", bound=SequenceMixin)


def subseq(seq: SeqType, begin: int, end: int) -> SeqType:
    """a copy of positions begin up to, not including, end

    Annotations are cut to the same positions.
    """
    size = len(seq)
    if not 0 <= begin <= size:
        raise IndexOutOfBoundsError("subseq begin", begin, 0, size)
    if not begin <= end <= size:
        raise IndexOutOfBoundsError("subseq end", end, begin, size)
    new = seq.copy()
    if end < size:
        new.delete_elements(end, size - end)
    if begin:
        new.delete_elements(0, begin)
    return new


def concatenate(seq1: SeqType, seq2: SeqType) -> SeqType:
    """a copy of seq1 followed by seq2, both must have the same name"""
    new = seq1.copy()
    new.merge(seq2)
    return new


def reverse(seq: SeqType) -> SeqType:
    """a copy with positions in reverse order, quality scores included"""
    new = seq.copy()
    new.set_content(seq.get_content()[::-1])
    for annotation_type in new.annotation_types:
        annotation = new.annotation(annotation_type)
        if isinstance(annotation, SequenceQuality):
            annotation.set_scores(annotation.scores[::-1])
    return new


def _discrete(seq: SequenceMixin, func: str) -> None:
    if not isinstance(seq, Sequence):
        msg = f"{func} requires a sequence of discrete states, not {type(seq).__name__}"
        raise SequenceError(msg)


def _nucleic(seq: SequenceMixin, func: str) -> NucleicAlphabet:
    _discrete(seq, func)
    alphabet = seq.alphabet
    if not isinstance(alphabet, NucleicAlphabet):
        msg = f"{alphabet.alphabet_type} is not a nucleic alphabet"
        raise AlphabetError(msg)
    return alphabet


def complement(seq: SeqType) -> SeqType:
    """a copy with each state replaced by its complement"""
    alphabet = _nucleic(seq, "complement")
    new = seq.copy()
    new.set_content([alphabet.complement(code) for code in seq.to_list()])
    return new


def reverse_complement(seq: SeqType) -> SeqType:
    return reverse(complement(seq))


def _switch_alphabet(seq: SeqType, source: StateAlphabet, dest: StateAlphabet) -> SeqType:
    if seq.alphabet != source:
        raise AlphabetMismatchError("transcription", source, seq.alphabet)
    new = seq.copy()
    # the nucleic alphabets share their codes
    new._alphabet = dest
    return new


def transcript(seq: SeqType) -> SeqType:
    """the RNA copy of a DNA sequence"""
    return _switch_alphabet(seq, DNA, RNA)


def reverse_transcript(seq: SeqType) -> SeqType:
    """the DNA copy of an RNA sequence"""
    return _switch_alphabet(seq, RNA, DNA)


def percent_identity(
    seq1: SequenceMixin, seq2: SequenceMixin, ignore_gaps: bool = False
) -> float:
    """percentage of positions with the same state

    Parameters
    ----------
    seq1, seq2
        aligned sequences
    ignore_gaps
        exclude positions where either sequence has a gap

    Returns
    -------
    nan when no position is compared
    """
    if seq1.alphabet != seq2.alphabet:
        raise AlphabetMismatchError("percent_identity", seq1.alphabet, seq2.alphabet)
    if len(seq1) != len(seq2):
        msg = f"sequence lengths {len(seq1)} and {len(seq2)} differ"
        raise SequenceNotAlignedError(msg)
    first = seq1.get_content()
    second = seq2.get_content()
    same = first == second
    if same.ndim > 1:
        same = same.all(axis=1)
    if ignore_gaps:
        keep = (first != GAP_CODE) & (second != GAP_CODE)
        same = same[keep]
    if not len(same):
        return float("nan")
    return 100.0 * float(same.sum()) / len(same)


def num_sites(seq: SequenceMixin) -> int:
    """the number of non-gap positions"""
    _discrete(seq, "num_sites")
    return int((seq.get_content() != GAP_CODE).sum())


def num_complete_sites(seq: SequenceMixin) -> int:
    """the number of positions that are neither gaps nor unresolved"""
    _discrete(seq, "num_complete_sites")
    return sum(seq.alphabet.is_resolved(code) for code in seq.to_list())


def remove_gaps(seq: SeqType) -> SeqType:
    """a copy without gap positions, annotations follow the deletions"""
    _discrete(seq, "remove_gaps")
    new = seq.copy()
    for pos in numpy.flatnonzero(seq.get_content() == GAP_CODE)[::-1]:
        new.delete_element(int(pos))
    return new


def gc_content(
    seq: SequenceMixin,
    ignore_unresolved: bool = True,
    ignore_gap: bool = True,
) -> float:
    """fraction of G and C

    Parameters
    ----------
    seq
        over a nucleic alphabet
    ignore_unresolved
        exclude ambiguous states, otherwise each counts as the fraction of
        its possible bases that are G or C
    ignore_gap
        exclude gaps, otherwise they count as not G or C
    """
    alphabet = _nucleic(seq, "gc_content")
    strong = {alphabet.char_to_int("C"), alphabet.char_to_int("G")}
    gc = 0.0
    total = 0.0
    for code in seq.to_list():
        if code == GAP_CODE:
            if not ignore_gap:
                total += 1
            continue
        alias = alphabet.get_alias(code)
        if len(alias) > 1:
            if ignore_unresolved:
                continue
            gc += sum(c in strong for c in alias) / len(alias)
        else:
            gc += code in strong
        total += 1
    if not total:
        msg = f"{seq.name!r} has no site to compute the GC content from"
        raise EmptySequenceError(msg)
    return gc / total


_unresolved_chars = frozenset("ACDGHKMNRSVWXY-")
_nucleic_chars = frozenset("BO?0")
_protein_chars = frozenset("EFILPQ")

_HEURISTIC_THRESHOLD = 0.95


def guess_alphabet(text: str) -> StateAlphabet:
    """guesses whether text is DNA, RNA or protein from its characters

    Notes
    -----
    When no character is decisive, the answer comes from whether more than 95%
    of the characters are consistent with one alphabet. That is a heuristic,
    a UserWarning is emitted when it is used.

    Raises
    ------
    EmptySequenceError
        if text is empty
    AlphabetError
        if a character belongs to no alphabet
    SequenceError
        if the characters are contradictory or not decisive
    """
    if not text:
        msg = "cannot guess the alphabet of an empty sequence"
        raise EmptySequenceError(msg)

    nucleic = protein = unresolved = 0
    t_letter = u_letter = False
    for char in text.upper():
        if char in _unresolved_chars:
            unresolved += 1
        elif char in _nucleic_chars:
            nucleic += 1
        elif char == "T":
            t_letter = True
            unresolved += 1
        elif char == "U":
            u_letter = True
            nucleic += 1
        elif char in _protein_chars:
            protein += 1
        else:
            msg = f"{char!r} belongs to no known alphabet"
            raise AlphabetError(msg)

    size = len(text)
    if nucleic and not protein:
        if t_letter and u_letter:
            msg = "both T and U found, sequence type is confused"
            raise SequenceError(msg)
        if t_letter:
            return DNA
        if u_letter:
            return RNA
        if (nucleic + unresolved) / size > _HEURISTIC_THRESHOLD:
            warnings.warn("alphabet guessed as DNA by heuristic", UserWarning, stacklevel=2)
            return DNA

    if protein and not nucleic:
        if u_letter:
            msg = "U found in a protein sequence, sequence type is confused"
            raise SequenceError(msg)
        if t_letter:
            return PROTEIN
        if (protein + unresolved) / size > _HEURISTIC_THRESHOLD:
            warnings.warn(
                "alphabet guessed as protein by heuristic", UserWarning, stacklevel=2
            )
            return PROTEIN

    if not nucleic and not protein and t_letter:
        return DNA

    msg = "sequence type cannot be resolved"
    raise SequenceError(msg)
