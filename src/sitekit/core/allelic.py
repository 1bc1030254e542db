from __future__ import annotations

import typing
from collections.abc import Iterable
from typing import Any

import numba
import numpy
import numpy.typing as npt

from sitekit.core.alphabet import (
    GAP_CODE,
    AlphabetMismatchError,
    AlphabetState,
    BadCharError,
    StateAlphabet,
    get_alphabet,
)
from sitekit.util.deserialise import register_deserialiser
from sitekit.util.misc import get_object_provenance

if typing.TYPE_CHECKING:  # pragma: no cover
    from sitekit.core.sequence import ProbabilisticSequence, Sequence


@numba.jit(nopython=True)
def _pair_index(first: int, second: int, num_bases: int) -> int:  # pragma: no cover
    # rank of the unordered pair first < second among all such pairs
    return first * num_bases - first * (first + 1) // 2 + second - first - 1


@numba.jit(nopython=True)
def _allelic_likelihoods(
    counts: npt.NDArray[numpy.float64],
    n_alleles: int,
    result: npt.NDArray[numpy.float64],
) -> npt.NDArray[numpy.float64]:  # pragma: no cover
    num_bases = counts.shape[0]
    n_supported = 0
    first = -1
    second = -1
    for b in range(num_bases):
        if counts[b] > 0:
            n_supported += 1
            if first < 0:
                first = b
            elif second < 0:
                second = b

    if n_supported == 0:
        result[:] = 1.0
        return result

    result[:] = 0.0
    if n_supported > 2:
        return result

    width = n_alleles - 1
    if n_supported == 1:
        n = counts[first]
        result[first] = 1.0
        for i in range(num_bases):
            for j in range(i + 1, num_bases):
                if i != first and j != first:
                    continue
                offset = num_bases + _pair_index(i, j, num_bases) * width
                for k in range(1, n_alleles):
                    held = k if i == first else n_alleles - k
                    result[offset + k - 1] = (held / n_alleles) ** n
        return result

    n_first = counts[first]
    n_second = counts[second]
    offset = num_bases + _pair_index(first, second, num_bases) * width
    for k in range(1, n_alleles):
        result[offset + k - 1] = (k / n_alleles) ** n_first * (
            (n_alleles - k) / n_alleles
        ) ** n_second
    return result


class AllelicAlphabet(StateAlphabet):
    """states of a population of n_alleles individuals over a base alphabet

    Each state records at most two distinct base states and how many of the
    n_alleles copies carry each.

    Parameters
    ----------
    state_alphabet
        the base alphabet, its resolved states are the possible alleles
    n_alleles
        the number of copies, at least 2

    Notes
    -----
    With S resolved base states and N alleles, the codes are

    - gap, -1
    - the pure states, 0 to S-1, in base order
    - the mixed state holding k copies of base i and N-k copies of base j,
      for i < j and 1 <= k <= N-1, ``(i * S + j) * (N - 1) + k - 1 + S``
    - unknown, ``S**2 * (N - 1)``

    A state is written as two ``<base><count>`` tokens, counts zero padded
    to the number of digits in N. For a DNA base and N=4, ``"A3_0"`` is pure
    A, ``"A1C3"`` holds one A and three C and ``"?3_0"`` is unknown.
    """

    def __init__(self, state_alphabet: StateAlphabet, n_alleles: int) -> None:
        if n_alleles < 2:
            msg = f"n_alleles must be >= 2, not {n_alleles}"
            raise ValueError(msg)

        self._base = state_alphabet
        self._n_alleles = n_alleles
        self._width = len(str(n_alleles))
        base_size = state_alphabet.size
        base_coding = state_alphabet.state_coding_size
        coding_size = 2 * (base_coding + self._width)

        filler = self._token("_" * base_coding, 0)
        top = n_alleles - 1
        bases = state_alphabet.resolved_chars
        states = [AlphabetState(GAP_CODE, "-" * coding_size, "Gap")]
        for i, base in enumerate(bases):
            states.append(AlphabetState(i, self._token(base, top) + filler, base))

        for i in range(base_size):
            for j in range(i + 1, base_size):
                for k in range(1, n_alleles):
                    code = (i * base_size + j) * top + k - 1 + base_size
                    letter = self._token(bases[i], k) + self._token(
                        bases[j], n_alleles - k
                    )
                    states.append(AlphabetState(code, letter, letter))

        unknown = base_size**2 * top
        unknown_letter = self._token("?" * base_coding, top) + filler
        states.append(AlphabetState(unknown, unknown_letter, "Unknown"))
        super().__init__(
            states,
            alphabet_type=f"Allelic({state_alphabet.alphabet_type},{n_alleles})",
            unknown_code=unknown,
        )

    def _token(self, letter: str, count: int) -> str:
        return f"{letter}{count:0{self._width}d}"

    @property
    def state_alphabet(self) -> StateAlphabet:
        return self._base

    @property
    def n_alleles(self) -> int:
        return self._n_alleles

    def char_to_int(self, state: str) -> int:
        if not isinstance(state, str) or len(state) != self.state_coding_size:
            raise BadCharError(
                state,
                self.alphabet_type,
                f"states have length {self.state_coding_size}",
            )
        return super().char_to_int(state)

    def get_generic(self, states: Iterable[int]) -> int:
        """returns the first of states"""
        return next(iter(states))

    def translate_state(self, state: str) -> str:
        """the pure allelic state of a resolved base state"""
        code = self._base.char_to_int(state)
        return self.int_to_char(self._base.state_index(code))

    def compute_likelihoods(
        self,
        counts: npt.ArrayLike,
        out: npt.NDArray[numpy.float64] | None = None,
    ) -> npt.NDArray[numpy.float64]:
        """likelihood of each resolved allelic state given allele counts

        Parameters
        ----------
        counts
            observed count of each resolved base state, in base order
        out
            array of length size to fill, created if not provided

        Returns
        -------
        Values are indexed by state_index. With no observation every state has
        likelihood 1, with more than two observed bases every state has
        likelihood 0.

        Notes
        -----
        The binomial coefficient is omitted, it is constant across the states
        consistent with the counts.
        """
        counts = numpy.asarray(counts, dtype=numpy.float64)
        if counts.shape != (self._base.size,):
            msg = f"counts shape {counts.shape} != ({self._base.size},)"
            raise ValueError(msg)
        if out is None:
            out = numpy.empty(self.size, dtype=numpy.float64)
        return _allelic_likelihoods(counts, self._n_alleles, out)

    def convert_from_state_alphabet(
        self,
        seq: Sequence | ProbabilisticSequence,
    ) -> ProbabilisticSequence:
        """likelihoods of the allelic states at each position of seq

        Parameters
        ----------
        seq
            over the base alphabet. Discrete states count one observation of
            each base they resolve to, probabilistic rows are taken as counts.
            Gaps give a vector of ones.
        """
        from sitekit.core.sequence import ProbabilisticSequence, Sequence

        if seq.alphabet != self._base:
            raise AlphabetMismatchError(
                "convert_from_state_alphabet", seq.alphabet, self._base
            )

        rows = numpy.empty((len(seq), self.size), dtype=numpy.float64)
        resolved = self._base.resolved_ints
        discrete = isinstance(seq, Sequence)
        for pos in range(len(seq)):
            if discrete and seq[pos] == GAP_CODE:
                rows[pos] = 1.0
                continue
            counts = [seq.state_value_at(pos, state) for state in resolved]
            self.compute_likelihoods(counts, out=rows[pos])

        return ProbabilisticSequence(
            seq.name,
            rows,
            alphabet=self,
            comments=list(seq.comments),
        )

    def to_rich_dict(self) -> dict[str, Any]:
        return {
            "type": get_object_provenance(self),
            "state_alphabet": self._base.to_rich_dict(),
            "n_alleles": self._n_alleles,
        }


@register_deserialiser(get_object_provenance(AllelicAlphabet))
def deserialise_allelic_alphabet(data: dict) -> AllelicAlphabet:
    from sitekit.util.deserialise import deserialise_object

    base = deserialise_object(data["state_alphabet"])
    return AllelicAlphabet(get_alphabet(base), data["n_alleles"])
