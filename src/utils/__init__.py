from .naming import DIACRITIC_FOLDS, normalize_name

__all__ = [
    "DIACRITIC_FOLDS",
    "normalize_name",
]
