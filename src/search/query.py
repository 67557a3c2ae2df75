"""Query expansion: typo corrections and synonym lookups before index search."""

from .tokenize import STOP_WORDS, normalize_term, tokenize

SYNONYMS: dict[str, tuple[str, ...]] = {
    "marvel": ("mcu", "marvel studios", "comic book", "superhero"),
    "disney": ("walt disney", "pixar", "family"),
    "netflix": ("netflix original", "streaming"),
    "warner": ("warner bros", "dc comics"),
    "universal": ("universal pictures", "illumination"),
    "horror": ("scary", "terror", "supernatural"),
    "comedy": ("funny", "humor", "hilarious"),
    "action": ("adventure", "fight", "battle"),
    "drama": ("emotional", "dramatic"),
    "scifi": ("science fiction", "futuristic", "space"),
    "romance": ("love story", "romantic", "love"),
    "animation": ("animated", "cartoon"),
    "documentary": ("docuseries", "true story"),
    "thriller": ("suspense", "tension"),
}

TYPO_CORRECTIONS: dict[str, str] = {
    "mavel": "marvel",
    "disnye": "disney",
    "spideman": "spiderman",
    "batmna": "batman",
    "supermna": "superman",
    "chirstmas": "christmas",
    "hallowen": "halloween",
    "vampier": "vampire",
    "zombi": "zombie",
    "scfi": "scifi",
    "horor": "horror",
    "comdy": "comedy",
    "acton": "action",
    "dram": "drama",
}

# reverse lookup so "scary" also reaches "horror"
_CANONICAL: dict[str, str] = {
    synonym: key for key, synonyms in SYNONYMS.items() for synonym in synonyms
}


def query_terms(query: str) -> list[str]:
    """Normalized terms of a query: the whole phrase when multi-word, then each token."""
    tokens = [t for t in tokenize(normalize_term(query)) if t not in STOP_WORDS]
    terms = [" ".join(tokens)] if len(tokens) > 1 else []
    terms.extend(tokens)
    return list(dict.fromkeys(terms))


def expand_query(query: str) -> list[str]:
    """Extra terms implied by the query, excluding the query terms themselves."""
    base = query_terms(query)
    expanded: list[str] = []
    for term in base:
        corrected = TYPO_CORRECTIONS.get(term)
        if corrected:
            expanded.append(corrected)
            term = corrected
        expanded.extend(SYNONYMS.get(term, ()))
        canonical = _CANONICAL.get(term)
        if canonical:
            expanded.append(canonical)
    seen = set(base)
    return [t for t in dict.fromkeys(expanded) if t not in seen]
