"""polymorphism and divergence measures for sites of codons

Sites must be over the CodonAlphabet of the genetic code in use.
"""

from __future__ import annotations

from collections.abc import Callable
from itertools import permutations

from sitekit.core.alphabet import GAP_CODE, AlphabetMismatchError, CodonAlphabet
from sitekit.core.genetic_code import GeneticCode
from sitekit.core.site import Site, SiteError
from sitekit.tools.site import get_counts, get_frequencies, has_gap, is_constant

_PURINES = frozenset((0, 2))


def _check_site(site: Site, gcode: GeneticCode, func: str) -> None:
    if site.alphabet != gcode.codon_alphabet:
        raise AlphabetMismatchError(func, gcode.codon_alphabet, site.alphabet)
    if has_gap_or_stop(site, gcode):
        msg = f"{func} requires a site without gaps or stop codons"
        raise SiteError(msg)


def _position_site(site: Site, pos: int) -> Site:
    alphabet: CodonAlphabet = site.alphabet
    nucs = [alphabet.get_n_position(codon, pos) for codon in site.to_list()]
    return Site(nucs, alphabet=alphabet.nucleic_alphabet)


def has_stop(site: Site, gcode: GeneticCode) -> bool:
    return any(gcode.is_stop(codon) for codon in site.to_list())


def has_gap_or_stop(site: Site, gcode: GeneticCode) -> bool:
    return has_gap(site) or has_stop(site, gcode)


def is_mono_site_polymorphic(site: Site) -> bool:
    """True if the codons differ at exactly one of the three positions"""
    if has_gap(site):
        msg = "is_mono_site_polymorphic requires a site without gaps"
        raise SiteError(msg)
    if is_constant(site):
        return False
    num_poly = sum(not is_constant(_position_site(site, pos)) for pos in range(3))
    return num_poly == 1


def is_synonymous_polymorphic(site: Site, gcode: GeneticCode) -> bool:
    """True if the site is polymorphic and every codon encodes the same amino acid"""
    _check_site(site, gcode, "is_synonymous_polymorphic")
    if is_constant(site):
        return False
    amino_acids = {gcode.translate(codon) for codon in site.to_list()}
    return len(amino_acids) == 1


def generate_codon_site_without_rare_variant(
    site: Site, gcode: GeneticCode, freqmin: float
) -> Site:
    """a copy in which rare codons are replaced by the most frequent codon

    A codon is rare when the nucleotide it carries at any of the three
    positions has a frequency strictly below freqmin at that position.
    """
    _check_site(site, gcode, "generate_codon_site_without_rare_variant")
    new = Site(site.get_content(), alphabet=site.alphabet, coordinate=site.coordinate)
    if is_constant(site):
        return new

    codon_freqs = get_frequencies(site)
    most_frequent = max(codon_freqs, key=lambda codon: (codon_freqs[codon], -codon))
    position_freqs = [get_frequencies(_position_site(site, pos)) for pos in range(3)]
    alphabet: CodonAlphabet = site.alphabet
    for i, codon in enumerate(site.to_list()):
        nucs = alphabet.get_positions(codon)
        if any(position_freqs[p][nucs[p]] < freqmin for p in range(3)):
            new[i] = most_frequent
    return new


def number_of_differences(codon1: int, codon2: int, alphabet: CodonAlphabet) -> int:
    """number of positions at which two codons differ"""
    first = alphabet.get_positions(codon1)
    second = alphabet.get_positions(codon2)
    return sum(a != b for a, b in zip(first, second, strict=True))


def number_of_synonymous_differences(
    codon1: int, codon2: int, gcode: GeneticCode, minchange: bool = False
) -> float:
    """number of synonymous changes between two codons

    When the codons differ at several positions, every order of single
    changes is a path. Paths through a stop codon are excluded.

    Parameters
    ----------
    minchange
        use the path with the most synonymous changes, which has the fewest
        non-synonymous changes, instead of the mean over paths
    """
    alphabet = gcode.codon_alphabet
    first = list(alphabet.get_positions(codon1))
    second = alphabet.get_positions(codon2)
    diffs = [p for p in range(3) if first[p] != second[p]]
    if not diffs:
        return 0.0
    if len(diffs) == 1:
        return float(gcode.are_synonymous(codon1, codon2))
    if len(diffs) == 2 and gcode.are_synonymous(codon1, codon2):
        return 2.0

    scores = []
    for order in permutations(diffs):
        current = first.copy()
        previous = codon1
        synonymous = 0
        valid = True
        for pos in order:
            current[pos] = second[pos]
            step = alphabet.get_codon(*current)
            if step != codon2 and gcode.is_stop(step):
                valid = False
                break
            synonymous += gcode.are_synonymous(previous, step)
            previous = step
        if valid:
            scores.append(synonymous)

    if not scores:
        return 0.0
    if minchange:
        return float(max(scores))
    return sum(scores) / len(scores)


def _pi(site: Site, pair_value: Callable[[int, int], float]) -> float:
    frequencies = get_frequencies(site)
    total = 0.0
    for codon1, freq1 in frequencies.items():
        for codon2, freq2 in frequencies.items():
            total += freq1 * freq2 * pair_value(codon1, codon2)
    n = len(site)
    return total * n / (n - 1)


def pi_synonymous(site: Site, gcode: GeneticCode, minchange: bool = False) -> float:
    """synonymous diversity, n/(n-1) sum_ij x_i x_j P_ij

    x_i is the frequency of codon i and P_ij the number of synonymous
    differences between codons i and j. The value is not normalised by the
    number of synonymous positions.
    """
    _check_site(site, gcode, "pi_synonymous")
    if is_constant(site):
        return 0.0
    return _pi(
        site,
        lambda i, j: number_of_synonymous_differences(i, j, gcode, minchange),
    )


def pi_non_synonymous(site: Site, gcode: GeneticCode, minchange: bool = False) -> float:
    """non-synonymous diversity, as pi_synonymous for non-synonymous differences"""
    _check_site(site, gcode, "pi_non_synonymous")
    if is_constant(site) or is_synonymous_polymorphic(site, gcode):
        return 0.0
    alphabet = gcode.codon_alphabet

    def non_synonymous(i: int, j: int) -> float:
        return number_of_differences(i, j, alphabet) - number_of_synonymous_differences(
            i, j, gcode, minchange
        )

    return _pi(site, non_synonymous)


def number_of_synonymous_positions(
    codon: int, gcode: GeneticCode, ratio: float = 1.0
) -> float:
    """the synonymous fraction of the possible point mutations of codon

    Each synonymous transversion contributes 1 / (ratio + 2) and each
    synonymous transition ratio / (ratio + 2), ratio being the
    transition / transversion ratio. Unresolved and stop codons give 0.
    """
    alphabet = gcode.codon_alphabet
    if codon == GAP_CODE or codon == alphabet.unknown_code or gcode.is_stop(codon):
        return 0.0
    nucs = alphabet.get_positions(codon)
    amino_acid = gcode.translate(codon)
    result = 0.0
    for pos in range(3):
        for base in range(4):
            if base == nucs[pos]:
                continue
            mutant = list(nucs)
            mutant[pos] = base
            mutant_codon = alphabet.get_codon(*mutant)
            if gcode.is_stop(mutant_codon):
                continue
            if gcode.translate(mutant_codon) != amino_acid:
                continue
            transition = (nucs[pos] in _PURINES) == (base in _PURINES)
            result += (ratio if transition else 1.0) / (ratio + 2)
    return result


def mean_number_of_synonymous_positions(
    site: Site, gcode: GeneticCode, ratio: float = 1.0
) -> float:
    """number_of_synonymous_positions averaged over the codons of site"""
    _check_site(site, gcode, "mean_number_of_synonymous_positions")
    return sum(
        freq * number_of_synonymous_positions(codon, gcode, ratio)
        for codon, freq in get_frequencies(site).items()
    )


def _without_rare_variants(site: Site, gcode: GeneticCode, freqmin: float) -> Site:
    if freqmin > 1.0 / len(site):
        return generate_codon_site_without_rare_variant(site, gcode, freqmin)
    return site


def number_of_substitutions(site: Site, gcode: GeneticCode, freqmin: float = 0.0) -> int:
    """minimum number of substitutions explaining the codons of site

    The larger of the number of distinct codons minus one and the summed
    number of distinct nucleotides minus one at each position, assuming no
    recombination within codons. Codons rarer than freqmin are ignored.
    """
    _check_site(site, gcode, "number_of_substitutions")
    if is_constant(site, ignore_unknown=True):
        return 0
    site = _without_rare_variants(site, gcode, freqmin)
    by_codon = len(get_counts(site)) - 1
    by_base = sum(len(get_counts(_position_site(site, p))) - 1 for p in range(3))
    return max(by_codon, by_base)


def number_of_non_synonymous_substitutions(
    site: Site, gcode: GeneticCode, freqmin: float = 0.0
) -> int:
    """minimum number of non-synonymous substitutions explaining the codons of site

    Each distinct codon is joined to its closest distinct codon, closeness
    being the number of non-synonymous differences under minchange. The sum
    of these distances less the smallest one is returned.
    """
    _check_site(site, gcode, "number_of_non_synonymous_substitutions")
    if is_constant(site, ignore_unknown=True):
        return 0
    site = _without_rare_variants(site, gcode, freqmin)
    codons = list(get_counts(site))
    if len(codons) < 2:
        return 0
    alphabet = gcode.codon_alphabet
    closest = []
    for codon1 in codons:
        closest.append(
            min(
                number_of_differences(codon1, codon2, alphabet)
                - int(number_of_synonymous_differences(codon1, codon2, gcode, True))
                for codon2 in codons
                if codon2 != codon1
            )
        )
    return sum(closest) - min(closest)


def _fixed_nucleotide(site: Site, pos: int) -> int | None:
    nucs = _position_site(site, pos).to_list()
    return nucs[0] if len(set(nucs)) == 1 else None


def fixed_differences(
    site_in: Site, site_out: Site, codon_in: int, codon_out: int, gcode: GeneticCode
) -> list[int]:
    """fixed synonymous and non-synonymous differences between two groups

    Parameters
    ----------
    site_in, site_out
        the codons of each group
    codon_in, codon_out
        the consensus codon of each group

    Returns
    -------
    [synonymous, non-synonymous]. A position counts only if it is constant
    within both groups, other differing positions of codon_out are reverted
    to codon_in. Complex codons use the path with fewest non-synonymous
    changes.
    """
    if site_in.alphabet != site_out.alphabet:
        raise AlphabetMismatchError("fixed_differences", site_in.alphabet, site_out.alphabet)
    _check_site(site_in, gcode, "fixed_differences")
    _check_site(site_out, gcode, "fixed_differences")
    alphabet = gcode.codon_alphabet
    first = alphabet.get_positions(codon_in)
    second = list(alphabet.get_positions(codon_out))
    num_diffs = 0
    for pos in range(3):
        if first[pos] == second[pos]:
            continue
        fixed_in = _fixed_nucleotide(site_in, pos)
        fixed_out = _fixed_nucleotide(site_out, pos)
        if fixed_in is None or fixed_out is None or fixed_in == fixed_out:
            second[pos] = first[pos]
        else:
            num_diffs += 1
    if not num_diffs:
        return [0, 0]
    reverted = alphabet.get_codon(*second)
    synonymous = int(number_of_synonymous_differences(codon_in, reverted, gcode, True))
    return [synonymous, num_diffs - synonymous]


def is_four_fold_degenerated(site: Site, gcode: GeneticCode) -> bool:
    """True if every resolved codon is fourfold degenerate and only the third
    position varies"""
    _check_site(site, gcode, "is_four_fold_degenerated")
    alphabet = gcode.codon_alphabet
    codons = [c for c in site.to_list() if c != alphabet.unknown_code]
    if not codons:
        return False
    resolved = Site(codons, alphabet=alphabet)
    if not is_constant(resolved):
        for pos in (0, 1):
            if not is_constant(_position_site(resolved, pos)):
                return False
    return all(gcode.is_four_fold_degenerated(c) for c in codons)
