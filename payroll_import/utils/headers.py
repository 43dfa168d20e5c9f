import unicodedata


def normalize_header(text: str) -> str:
    """Case-insensitive, whitespace-collapsed form of a header"""
    return " ".join(str(text).split()).casefold()


def fold_header(text: str) -> str:
    """normalize_header plus Vietnamese diacritic folding ("Mã NV" -> "ma nv")"""
    decomposed = unicodedata.normalize("NFD", normalize_header(text))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return stripped.replace("đ", "d")


def contains_either_way(a: str, b: str, min_length: int = 2) -> bool:
    """True when one folded header contains the other"""
    folded_a = fold_header(a)
    folded_b = fold_header(b)
    if min(len(folded_a), len(folded_b)) < min_length:
        return False
    return folded_a in folded_b or folded_b in folded_a
