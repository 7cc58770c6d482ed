"""
English text analyzer for the lexical index.

Lower-cases, splits on non-alphanumerics, drops English stop-words and
applies a light suffix stemmer so that "embeddings" and "embedding" match.
"""

import re
from typing import FrozenSet, List, Optional

_TOKEN_RE = re.compile(r"[a-z0-9]+")

ENGLISH_STOPWORDS: FrozenSet[str] = frozenset("""
a about above after again against all am an and any are as at be because been
before being below between both but by can could did do does doing down during
each few for from further had has have having he her here hers herself him
himself his how i if in into is it its itself just me more most my myself no
nor not now of off on once only or other our ours ourselves out over own same
she should so some such than that the their theirs them themselves then there
these they this those through to too under until up very was we were what when
where which while who whom why will with would you your yours yourself
yourselves
""".split())

# (suffix, replacement, minimum stem length after stripping)
_SUFFIX_RULES = (
    ("sses", "ss", 2),
    ("ies", "y", 2),
    ("ings", "", 3),
    ("ing", "", 3),
    ("edly", "", 3),
    ("ed", "", 3),
    ("ly", "", 3),
    ("s", "", 3),
)


def stem(token: str) -> str:
    """
    Strip one common English suffix.

    Example:
        >>> stem("embeddings")
        'embedd'
        >>> stem("embedding")
        'embedd'
        >>> stem("class")
        'class'
    """
    if token.isdigit():
        return token
    for suffix, replacement, min_stem in _SUFFIX_RULES:
        if token.endswith(suffix):
            base = token[: -len(suffix)]
            if len(base) < min_stem:
                return token
            if suffix == "s" and base.endswith(("s", "u", "i")):
                return token
            return base + replacement
    return token


class EnglishAnalyzer:
    """Tokenizer + stop-word filter + stemmer, applied to bodies and queries alike."""

    def __init__(
        self,
        stopwords: Optional[FrozenSet[str]] = None,
        stemming: bool = True,
        min_token_length: int = 1,
    ):
        self.stopwords = ENGLISH_STOPWORDS if stopwords is None else stopwords
        self.stemming = stemming
        self.min_token_length = min_token_length

    def analyze(self, text: str) -> List[str]:
        tokens = []
        for raw in _TOKEN_RE.findall((text or "").lower()):
            if len(raw) < self.min_token_length or raw in self.stopwords:
                continue
            tokens.append(stem(raw) if self.stemming else raw)
        return tokens

    def __call__(self, text: str) -> List[str]:
        return self.analyze(text)
