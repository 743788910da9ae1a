"""Allowed values for the string-typed enumeration columns."""

SOURCES = ["INNATE", "ITEM", "CLASS", "RACE", "BACKGROUND", "FEAT"]

RESET_TYPES = ["SHORT_REST", "LONG_REST", "SPECIAL", "NONE"]

ITEM_CATEGORIES = ["WEAPON", "ARMOR", "CONSUMABLE", "OTHER"]

# categories backed by their own subtype table, keyed by items.id
SUBTYPE_CATEGORIES = ["WEAPON", "ARMOR"]

RARITIES = ["COMMON", "UNCOMMON", "RARE", "VERY_RARE", "LEGENDARY"]

COST_UNITS = ["PP", "GP", "EP", "SP", "CP"]

SCHOOLS = [
    "ABJURATION", "CONJURATION", "DIVINATION", "ENCHANTMENT",
    "EVOCATION", "ILLUSION", "NECROMANCY", "TRANSMUTATION",
]


def normalize(value, allowed, field):
    """Upper-case ``value`` and check it against ``allowed``.

    ``None`` passes through untouched. Raises ``ValueError`` otherwise.
    """
    if value is None:
        return None
    norm = str(value).strip().upper()
    if norm not in allowed:
        raise ValueError(f"invalid {field}: {value!r}")
    return norm


def non_negative(value, field):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer")
    if value < 0:
        raise ValueError(f"{field} cannot be negative")
    return value
