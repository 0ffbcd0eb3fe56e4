import re
import unicodedata
from typing import Tuple

from nltk.tokenize import RegexpTokenizer

regexp_word_tokenizer = RegexpTokenizer(r'\w+')

_NON_ALNUM = re.compile(r'[^a-z0-9 ]+')
_WHITESPACE = re.compile(r'\s+')


# --------------------------
# --- Normalization -------
# --------------------------
def normalize(text: str) -> str:
    """Canonical form used for every comparison.

    Lowercases, strips diacritics, drops everything outside ``[a-z0-9 ]``
    and collapses whitespace. ``normalize(normalize(x)) == normalize(x)``.
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFKD", text.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _WHITESPACE.sub(" ", text)
    text = _NON_ALNUM.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def stem(token: str) -> str:
    # plural -> singular approximation, nothing smarter
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


# --------------------------
# --- Tokenization --------
# --------------------------
def tokenize(text: str) -> Tuple[str, ...]:
    canonical = normalize(text)
    if not canonical:
        return ()
    return tuple(stem(t) for t in regexp_word_tokenizer.tokenize(canonical))


def compact(text: str) -> str:
    """Normalized text with the spaces removed ("Cyber Security" -> "cybersecurity")."""
    return normalize(text).replace(" ", "")
