"""sitekit: alphabets of biological states and aligned containers of
sequences and sites."""

import typing
from importlib import import_module

from sitekit._version import __version__

if typing.TYPE_CHECKING:  # pragma: no cover
    from sitekit.core.alphabet import StateAlphabet
    from sitekit.core.container import VectorSiteContainer

__license__ = "BSD-3"


def __getattr__(name: str) -> typing.Any:  # noqa: ANN401
    if (attr := globals().get(name)) is not None:
        return attr

    if name not in _import_mapping:
        raise AttributeError(name)

    module_name = _import_mapping[name]
    module = import_module(f".{module_name}", package=__name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


_import_mapping = {
    "DNA": "core.alphabet",
    "RNA": "core.alphabet",
    "PROTEIN": "core.alphabet",
    "BINARY": "core.alphabet",
    "CODON_DNA": "core.alphabet",
    "CODON_RNA": "core.alphabet",
    "available_alphabets": "core.alphabet",
    "get_alphabet": "core.alphabet",
    "AllelicAlphabet": "core.allelic",
    "make_seq": "core.sequence",
    "Sequence": "core.sequence",
    "ProbabilisticSequence": "core.sequence",
    "SequenceWithQuality": "core.sequence",
    "Site": "core.site",
    "ProbabilisticSite": "core.site",
    "VectorSiteContainer": "core.container",
    "ProbabilisticVectorSiteContainer": "core.container",
    "CompressedVectorSiteContainer": "core.container",
    "MapSequenceContainer": "core.container",
    "available_codes": "core.genetic_code",
    "get_code": "core.genetic_code",
    "guess_alphabet": "tools.sequence",
    "deserialise_object": "util.deserialise",
}


def make_aligned(
    data: dict[str, str],
    *,
    alphabet: "str | StateAlphabet" = "dna",
) -> "VectorSiteContainer":
    """an aligned container from a dict of name to sequence string

    Parameters
    ----------
    data
        sequences of equal length keyed by name
    alphabet
        an alphabet or the name of one, see available_alphabets()
    """
    from sitekit.core.alphabet import get_alphabet
    from sitekit.core.container import VectorSiteContainer
    from sitekit.core.sequence import make_seq

    alphabet = get_alphabet(alphabet)
    seqs = [make_seq(seq, name=name, alphabet=alphabet) for name, seq in data.items()]
    return VectorSiteContainer.from_sequences(seqs, alphabet=alphabet)


__all__ = [*_import_mapping, "__version__", "make_aligned"]
