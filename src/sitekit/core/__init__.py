__all__ = [
    "allelic",
    "alphabet",
    "alphabet_index",
    "container",
    "genetic_code",
    "sequence",
    "site",
    "symbol_list",
]
