"""Channel catalogue and name canonicalization.

Uploaded files name channels the way each marketplace export does
("Amazon Seller Central", "shopify"); the dashboard groups by the canonical
names in ``CHANNELS``.
"""

import re

CHANNELS: list[str] = [
    "Amazon",
    "TikTok",
    "DTC-Shopify",
    "Retail",
    "CA International",
    "UK International",
    "Wholesale",
    "Omnichannel",
]

# Lowercased export name -> canonical dashboard name
CHANNEL_MAPPINGS: dict[str, str] = {
    "shopify": "DTC-Shopify",
    "retailsale": "Retail",
    "retail sale": "Retail",
    "amazon seller central": "Amazon",
    "amazon vendor central": "Amazon",
    "tiktok shop": "TikTok",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_key(value: object) -> str:
    """Reduce a brand or channel name to a comparison key.

    Lowercases, spells out ``&`` as ``and`` and drops everything that is not
    a letter or digit, so "Life Pro", "lifepro" and "LIFE-PRO" compare equal.

    Args:
        value: Raw name (None is treated as empty).

    Returns:
        Normalized key, possibly empty.
    """
    text = str(value or "").strip().lower().replace("&", "and")
    return _NON_ALNUM.sub("", text)


def canonical_channel(name: str | None) -> str | None:
    """Map an export channel name to its canonical dashboard name.

    Unknown names are returned trimmed but otherwise untouched; canonical
    names match case-insensitively.

    Args:
        name: Channel name as uploaded.

    Returns:
        Canonical channel name, or None for blank input.
    """
    if name is None:
        return None
    trimmed = str(name).strip()
    if not trimmed:
        return None

    mapped = CHANNEL_MAPPINGS.get(trimmed.lower())
    if mapped is not None:
        return mapped

    key = normalize_key(trimmed)
    for channel in CHANNELS:
        if normalize_key(channel) == key:
            return channel
    return trimmed
