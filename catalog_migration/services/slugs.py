"""
Slug Generation

Transliterates Russian Cyrillic text (GOST 7.79-2000, system B, without
diacritics) and normalizes it into URL-safe slugs.
"""

import re
from typing import Iterable

DEFAULT_MAX_LENGTH = 100

TRANSLITERATION_MAP = {
    # Lowercase
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'е': 'e',
    'ё': 'e', 'ж': 'zh', 'з': 'z', 'и': 'i', 'й': 'j', 'к': 'k',
    'л': 'l', 'м': 'm', 'н': 'n', 'о': 'o', 'п': 'p', 'р': 'r',
    'с': 's', 'т': 't', 'у': 'u', 'ф': 'f', 'х': 'kh', 'ц': 'ts',
    'ч': 'ch', 'ш': 'sh', 'щ': 'shch', 'ъ': '', 'ы': 'y', 'ь': '',
    'э': 'e', 'ю': 'yu', 'я': 'ya',
    # Uppercase
    'А': 'A', 'Б': 'B', 'В': 'V', 'Г': 'G', 'Д': 'D', 'Е': 'E',
    'Ё': 'E', 'Ж': 'Zh', 'З': 'Z', 'И': 'I', 'Й': 'J', 'К': 'K',
    'Л': 'L', 'М': 'M', 'Н': 'N', 'О': 'O', 'П': 'P', 'Р': 'R',
    'С': 'S', 'Т': 'T', 'У': 'U', 'Ф': 'F', 'Х': 'Kh', 'Ц': 'Ts',
    'Ч': 'Ch', 'Ш': 'Sh', 'Щ': 'Shch', 'Ъ': '', 'Ы': 'Y', 'Ь': '',
    'Э': 'E', 'Ю': 'Yu', 'Я': 'Ya',
}

_DISALLOWED = re.compile(r'[^A-Za-z0-9_\s-]')
_SEPARATORS = re.compile(r'[\s_]+')
_HYPHENS = re.compile(r'-+')


def transliterate(text: str) -> str:
    """
    Transliterate Cyrillic characters, leaving everything else untouched.

    Example:
        >>> transliterate("Хостинг")
        'Khosting'
    """
    if not text:
        return ''
    return ''.join(TRANSLITERATION_MAP.get(char, char) for char in text)


def generate_slug(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """
    Generate a URL-safe slug from arbitrary text.

    Args:
        text: Source text, may contain Cyrillic
        max_length: Maximum slug length

    Returns:
        Lowercase slug of ASCII letters, digits and single hyphens

    Example:
        >>> generate_slug("Хостинг Тест")
        'khosting-test'
    """
    if not text:
        return ''

    slug = transliterate(text).lower()
    slug = _DISALLOWED.sub('', slug)
    slug = _SEPARATORS.sub('-', slug)
    slug = _HYPHENS.sub('-', slug)
    slug = slug.strip('-')

    if len(slug) > max_length:
        slug = slug[:max_length].rstrip('-')

    return slug


def ensure_unique_slug(slug: str, existing: Iterable[str]) -> str:
    """
    Disambiguate ``slug`` against already taken slugs.

    Returns ``slug`` unchanged when it is free, otherwise ``slug-<n>`` for the
    smallest unoccupied ``n >= 2``.

    Example:
        >>> ensure_unique_slug("hosting", ["hosting", "hosting-2", "hosting-4"])
        'hosting-3'
    """
    if not slug:
        return ''

    taken = set(existing)
    if slug not in taken:
        return slug

    suffix = re.compile(rf'^{re.escape(slug)}-(\d+)$')
    occupied = set()
    for candidate in taken:
        match = suffix.match(candidate)
        if match:
            occupied.add(int(match.group(1)))

    n = 2
    while n in occupied:
        n += 1
    return f'{slug}-{n}'
