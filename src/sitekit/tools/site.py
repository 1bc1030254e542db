"""functions describing the states of a single discrete site"""

from __future__ import annotations

import math
from collections import Counter

from sitekit.core.alphabet import GAP_CODE
from sitekit.core.site import EmptySiteError, Site


def _check_not_empty(site: Site, func: str) -> None:
    if not len(site):
        msg = f"{func} requires a non-empty site"
        raise EmptySiteError(msg)


def get_counts(site: Site, resolve_unknown: bool = False) -> dict[int, float]:
    """number of occurrences of each state

    Parameters
    ----------
    resolve_unknown
        split each ambiguous state equally among the resolved states it
        stands for
    """
    counts = Counter(site.to_list())
    if not resolve_unknown:
        return {code: float(n) for code, n in sorted(counts.items())}

    alphabet = site.alphabet
    result: dict[int, float] = {}
    for code, n in counts.items():
        alias = alphabet.get_alias(code)
        for resolved in alias:
            result[resolved] = result.get(resolved, 0.0) + n / len(alias)
    return dict(sorted(result.items()))


def get_frequencies(site: Site, resolve_unknown: bool = False) -> dict[int, float]:
    """relative frequency of each state"""
    _check_not_empty(site, "get_frequencies")
    size = len(site)
    return {
        code: n / size for code, n in get_counts(site, resolve_unknown).items()
    }


def has_gap(site: Site) -> bool:
    return GAP_CODE in site.to_list()


def has_unknown(site: Site) -> bool:
    """True if any state is the fully unresolved state"""
    return site.alphabet.unknown_code in site.to_list()


def is_complete(site: Site) -> bool:
    """True if every state is resolved"""
    return all(site.alphabet.is_resolved(code) for code in site.to_list())


def are_sites_identical(site1: Site, site2: Site) -> bool:
    """compares alphabet and content only, coordinates are ignored"""
    if site1.alphabet != site2.alphabet or len(site1) != len(site2):
        return False
    return site1.to_list() == site2.to_list()


def is_constant(site: Site, ignore_unknown: bool = False) -> bool:
    """True if all states are the same

    Parameters
    ----------
    ignore_unknown
        skip the fully unresolved state. A site of unknown states only is
        constant.
    """
    _check_not_empty(site, "is_constant")
    codes = site.to_list()
    if ignore_unknown:
        codes = [c for c in codes if c != site.alphabet.unknown_code]
    return len(set(codes)) <= 1


def num_distinct_characters(site: Site) -> int:
    """number of distinct resolved states present"""
    _check_not_empty(site, "num_distinct_characters")
    alphabet = site.alphabet
    return len({code for code in site.to_list() if alphabet.is_resolved(code)})


def variability_shannon(site: Site, resolve_unknown: bool = False) -> float:
    """Shannon entropy, natural log, of the state frequencies"""
    frequencies = get_frequencies(site, resolve_unknown)
    return -sum(f * math.log(f) for f in frequencies.values() if f > 0)


def variability_factorial(site: Site) -> float:
    """log of the number of distinct orderings of the states

    log(n! / prod(n_i!)) where n_i is the count of state i
    """
    _check_not_empty(site, "variability_factorial")
    counts = get_counts(site)
    total = sum(counts.values())
    return math.lgamma(total + 1) - sum(math.lgamma(n + 1) for n in counts.values())


def heterozygosity(site: Site) -> float:
    """1 minus the sum of squared state frequencies, gaps excluded"""
    _check_not_empty(site, "heterozygosity")
    counts = get_counts(site)
    counts.pop(GAP_CODE, None)
    total = sum(counts.values())
    if not total:
        return 0.0
    return 1.0 - sum((n / total) ** 2 for n in counts.values())
