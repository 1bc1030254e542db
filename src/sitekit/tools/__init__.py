__all__ = ["codon_site", "sequence", "site"]
