"""Translation of codon states into amino acid states.

The tables are the NCBI 64 character strings in TCAG order, ``*`` denotes
termination. Codons are the integer codes of a CodonAlphabet.
"""

from __future__ import annotations

from itertools import product
from typing import TYPE_CHECKING

from sitekit.core.alphabet import (
    CODON_DNA,
    GAP_CODE,
    PROTEIN,
    BadIntError,
    CodonAlphabet,
    NucleicAlphabet,
)

if TYPE_CHECKING:  # pragma: no cover
    from sitekit.core.sequence import Sequence


class GeneticCodeError(Exception): ...


class GeneticCodeInitError(ValueError, GeneticCodeError): ...


class StopCodonError(GeneticCodeError, ValueError):
    def __init__(self, codon: str) -> None:
        self.codon = codon
        super().__init__(f"{codon!r} is a stop codon")


_bases = "TCAG"
_ncbi_codons = tuple(map("".join, product(_bases, _bases, _bases)))


class GeneticCode:
    """maps the codons of a CodonAlphabet to the amino acids of PROTEIN

    Use the `get_code()` function to get one of the included code instances.

    >>> gc = get_code(1)
    >>> gc.translate("ATG")
    'M'
    >>> gc.is_stop("TGA")
    True

    Parameters
    ----------
    code_sequence
        64-character string containing NCBI representation of the genetic code.
    ID
        Identifier
    name
        name of the Genetic code
    start_codon_sequence
        64-character string where the '-' character indicates the corresponding
        position of code_sequence **is not** a start codon
    codon_alphabet
        alphabet of the codon codes
    """

    def __init__(
        self,
        code_sequence: str,
        ID: int | None = None,
        name: str | None = None,
        start_codon_sequence: str | None = None,
        *,
        codon_alphabet: CodonAlphabet = CODON_DNA,
    ) -> None:
        if len(code_sequence) != 64:
            msg = f"code_sequence: {code_sequence} has length {len(code_sequence)}, but expected 64"
            raise GeneticCodeInitError(msg)

        self.code_sequence = code_sequence
        self.ID = ID
        self.name = name
        self.start_codon_sequence = start_codon_sequence
        self.codon_alphabet = codon_alphabet
        self.protein_alphabet = PROTEIN

        self._aa: dict[int, int] = {}
        self._stops: list[int] = []
        alt_starts = []
        start_codon_sequence = start_codon_sequence or "-" * 64
        for codon, aa, start in zip(
            _ncbi_codons, code_sequence, start_codon_sequence, strict=True
        ):
            code = codon_alphabet.char_to_int(self._to_alphabet(codon))
            if aa == "*":
                self._stops.append(code)
            else:
                self._aa[code] = PROTEIN.char_to_int(aa)
            if start != "-":
                alt_starts.append(code)
        self._stops.sort()
        self._alt_starts = frozenset(alt_starts)
        self._start = codon_alphabet.char_to_int(self._to_alphabet("ATG"))

    def _to_alphabet(self, codon: str) -> str:
        fourth = self.codon_alphabet.nucleic_alphabet.resolved_chars[3]
        return codon.upper().replace("T", fourth).replace("U", fourth)

    def __repr__(self) -> str:
        return f"GeneticCode(ID={self.ID!r}, name={self.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeneticCode):
            return NotImplemented
        return self.code_sequence == other.code_sequence

    def __hash__(self) -> int:
        return hash(self.code_sequence)

    def _codon(self, codon: int | str) -> int:
        if isinstance(codon, str):
            return self.codon_alphabet.char_to_int(self._to_alphabet(codon))
        code = int(codon)
        if not self.codon_alphabet.is_int_in_alphabet(code):
            raise BadIntError(code, self.codon_alphabet.alphabet_type)
        return code

    @property
    def stop_codons_as_int(self) -> list[int]:
        return list(self._stops)

    @property
    def stop_codons_as_char(self) -> list[str]:
        return [self.codon_alphabet.int_to_char(c) for c in self._stops]

    @property
    def sense_codons(self) -> list[int]:
        return sorted(self._aa)

    def translate(self, codon: int | str) -> int | str:
        """the amino acid of codon

        Returns
        -------
        a protein code for an int codon, a letter for a str codon. Gaps
        translate to gaps, unresolved codons to the unknown amino acid.

        Raises
        ------
        StopCodonError
            if codon is a stop codon
        """
        as_str = isinstance(codon, str)
        code = self._codon(codon)
        if code == GAP_CODE:
            aa = GAP_CODE
        elif code == self.codon_alphabet.unknown_code:
            aa = PROTEIN.unknown_code
        elif code in self._stops:
            raise StopCodonError(self.codon_alphabet.int_to_char(code))
        else:
            aa = self._aa[code]
        return PROTEIN.int_to_char(aa) if as_str else aa

    def is_stop(self, codon: int | str) -> bool:
        return self._codon(codon) in self._stops

    def is_start(self, codon: int | str) -> bool:
        """True for ATG"""
        return self._codon(codon) == self._start

    def is_alt_start(self, codon: int | str) -> bool:
        """True for any codon that can initiate translation under this code"""
        return self._codon(codon) in self._alt_starts

    def are_synonymous(self, codon1: int | str, codon2: int | str) -> bool:
        return self.translate(self._codon(codon1)) == self.translate(
            self._codon(codon2)
        )

    def get_synonymous(self, aa: int | str) -> list[int]:
        """codons encoding the amino acid aa"""
        code = PROTEIN.char_to_int(aa) if isinstance(aa, str) else aa
        return [codon for codon, value in sorted(self._aa.items()) if value == code]

    def is_four_fold_degenerated(self, codon: int | str) -> bool:
        """True if every third position variant of codon encodes the same amino acid"""
        code = self._codon(codon)
        if code not in self._aa:
            return False
        first = code - code % 4
        return all(self._aa.get(first + i) == self._aa[code] for i in range(4))

    def translate_sequence(self, seq: Sequence) -> Sequence:
        """a protein sequence, seq is over a codon or the matching nucleic alphabet

        Raises
        ------
        StopCodonError
            if seq contains a stop codon
        """
        from sitekit.core.sequence import Sequence

        codons = self._as_codons(seq)
        protein = [self.translate(int(c)) for c in codons]
        return Sequence(
            seq.name, protein, alphabet=PROTEIN, comments=list(seq.comments)
        )

    def _as_codons(self, seq: Sequence) -> list[int]:
        if seq.alphabet == self.codon_alphabet:
            return seq.to_list()
        if isinstance(seq.alphabet, NucleicAlphabet):
            if seq.alphabet != self.codon_alphabet.nucleic_alphabet:
                msg = f"{seq.alphabet.alphabet_type} does not match {self.codon_alphabet.alphabet_type}"
                raise GeneticCodeError(msg)
            nucs = seq.to_list()
            if len(nucs) % 3:
                msg = f"sequence length {len(nucs)} is not divisible by 3"
                raise GeneticCodeError(msg)
            return [
                self.codon_alphabet.get_codon(*nucs[i : i + 3])
                for i in range(0, len(nucs), 3)
            ]
        msg = f"cannot translate a sequence of {seq.alphabet.alphabet_type}"
        raise GeneticCodeError(msg)

    def get_coding_sequence(
        self,
        seq: Sequence,
        look_for_init_codon: bool = False,
        include_init_codon: bool = False,
    ) -> Sequence:
        """the part of seq read before the first stop codon

        Parameters
        ----------
        seq
            over a codon alphabet or its nucleic alphabet, the result has the
            same alphabet
        look_for_init_codon
            start reading after the first ATG
        include_init_codon
            keep that ATG in the result
        """
        from sitekit.core.sequence import Sequence

        codons = self._as_codons(seq)
        begin = 0
        if look_for_init_codon:
            for i, codon in enumerate(codons):
                if codon == self._start:
                    begin = i if include_init_codon else i + 1
                    break
            else:
                begin = len(codons)
        end = len(codons)
        for i in range(begin, len(codons)):
            if codons[i] in self._stops:
                end = i
                break
        step = 1 if seq.alphabet == self.codon_alphabet else 3
        content = seq.get_content()[begin * step : end * step]
        return Sequence(
            seq.name, content, alphabet=seq.alphabet, comments=list(seq.comments)
        )


_ncbi_data = [
    [
        "FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        1,
        "Standard Nuclear",
        "---M---------------M---------------M----------------------------",
    ],
    [
        "FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNKKSS**VVVVAAAADDEEGGGG",
        2,
        "Vertebrate Mitochondrial",
        "--------------------------------MMMM---------------M------------",
    ],
    [
        "FFLLSSSSYY**CCWWTTTTPPPPHHQQRRRRIIMMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        3,
        "Yeast Mitochondrial",
        "----------------------------------MM----------------------------",
    ],
    [
        "FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        4,
        "Mold, Protozoan, and Coelenterate Mitochondrial, and Mycoplasma/Spiroplasma Nuclear",
        "--MM---------------M------------MMMM---------------M------------",
    ],
    [
        "FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNKKSSSSVVVVAAAADDEEGGGG",
        5,
        "Invertebrate Mitochondrial",
        "---M----------------------------MMMM---------------M------------",
    ],
    [
        "FFLLSSSSYYQQCC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        6,
        "Ciliate, Dasycladacean and Hexamita Nuclear",
        "-----------------------------------M----------------------------",
    ],
    [
        "FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIIMTTTTNNNKSSSSVVVVAAAADDEEGGGG",
        9,
        "Echinoderm and Flatworm Mitochondrial",
        "-----------------------------------M---------------M------------",
    ],
    [
        "FFLLSSSSYY**CCCWLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        10,
        "Euplotid Nuclear",
        "-----------------------------------M----------------------------",
    ],
    [
        "FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        11,
        "Bacterial Nuclear and Plant Plastid",
        "---M---------------M------------MMMM---------------M------------",
    ],
    [
        "FFLLSSSSYY**CC*WLLLSPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        12,
        "Alternative Yeast Nuclear",
        "-------------------M---------------M----------------------------",
    ],
    [
        "FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNKKSSGGVVVVAAAADDEEGGGG",
        13,
        "Ascidian Mitochondrial",
        "-----------------------------------M----------------------------",
    ],
    [
        "FFLLSSSSYYY*CCWWLLLLPPPPHHQQRRRRIIIMTTTTNNNKSSSSVVVVAAAADDEEGGGG",
        14,
        "Alternative Flatworm Mitochondrial",
        "-----------------------------------M----------------------------",
    ],
    [
        "FFLLSSSSYY*QCC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        15,
        "Blepharisma Nuclear",
        "-----------------------------------M----------------------------",
    ],
    [
        "FFLLSSSSYY*LCC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        16,
        "Chlorophycean Mitochondrial",
        "-----------------------------------M----------------------------",
    ],
    [
        "FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNNKSSSSVVVVAAAADDEEGGGG",
        20,
        "Trematode Mitochondrial",
        "-----------------------------------M---------------M------------",
    ],
    [
        "FFLLSS*SYY*LCC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        22,
        "Scenedesmus obliquus Mitochondrial",
        "-----------------------------------M----------------------------",
    ],
    [
        "FF*LSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG",
        23,
        "Thraustochytrium Mitochondrial",
    ],
]

_codes = {data[1]: GeneticCode(*data) for data in _ncbi_data}

DEFAULT = _codes[1]


def get_code(code_id: int | str | GeneticCode | None = 1) -> GeneticCode:
    """returns the genetic code

    Parameters
    ----------
    code_id
        genetic code identifier, name, number or string(number), defaults to
        standard genetic code
    """
    code_id = code_id or 1
    if isinstance(code_id, GeneticCode):
        return code_id

    code = None
    if str(code_id).isdigit():
        code = _codes.get(int(code_id))
    else:
        for gc in _codes.values():
            if gc.name == code_id:
                code = gc

    if code is None:
        msg = f'No genetic code matching "{code_id}"'
        raise ValueError(msg)

    return code


def available_codes() -> list[tuple[int, str]]:
    """returns (ID, name) for each available genetic code"""
    return [(key, _codes[key].name) for key in sorted(_codes)]
