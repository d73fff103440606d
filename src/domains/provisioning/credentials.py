# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Username and temporary password generation.

Both generators are pure functions of their inputs.

Username format: {firstName}{lastNameInitial}, transliterated from
Mongolian Cyrillic to lowercase Latin, reduced to [a-z0-9] and padded
with "0" to the identity provider's minimum length. Collisions get a
numeric suffix starting at 2:

    baatare, baatare2, baatare3, ...

Password format: {phone1}{FirstInitial}{LastInitial}{special}, e.g.
"99123456BE$". The special character is picked from a digest of the
inputs, so regenerating for the same person yields the same password.
The identity provider forces a password change on first login.

Example:
    >>> generate_username("Баатар", "Эрдэнэ", set())
    'baatare'
    >>> generate_username("Баатар", "Эрдэнэ", {"baatare"})
    'baatare2'
"""

import hashlib
import re
from collections.abc import Set

from src.domains.provisioning.exceptions import GenerationExhaustedError

DEFAULT_MAX_ATTEMPTS = 10_000
DEFAULT_MIN_LENGTH = 4
FIRST_SUFFIX = 2
PASSWORD_SPECIAL_CHARS = "$%^&*!@#"

MONGOLIAN_TO_LATIN: dict[str, str] = {
    "а": "a",
    "б": "b",
    "в": "v",
    "г": "g",
    "д": "d",
    "е": "ye",
    "ё": "yo",
    "ж": "j",
    "з": "z",
    "и": "i",
    "й": "i",
    "к": "k",
    "л": "l",
    "м": "m",
    "н": "n",
    "о": "o",
    "ө": "u",
    "п": "p",
    "р": "r",
    "с": "s",
    "т": "t",
    "у": "u",
    "ү": "u",
    "ф": "f",
    "х": "kh",
    "ц": "ts",
    "ч": "ch",
    "ш": "sh",
    "щ": "sh",
    "ъ": "",
    "ы": "y",
    "ь": "",
    "э": "e",
    "ю": "yu",
    "я": "ya",
}

# Password initials use a single upper-case letter per Cyrillic letter
CYRILLIC_INITIALS: dict[str, str] = {
    "а": "A",
    "б": "B",
    "в": "V",
    "г": "G",
    "д": "D",
    "е": "E",
    "ё": "E",
    "ж": "J",
    "з": "Z",
    "и": "I",
    "й": "I",
    "к": "K",
    "л": "L",
    "м": "M",
    "н": "N",
    "о": "O",
    "ө": "O",
    "п": "P",
    "р": "R",
    "с": "S",
    "т": "T",
    "у": "U",
    "ү": "U",
    "ф": "F",
    "х": "H",
    "ц": "C",
    "ч": "C",
    "ш": "S",
    "щ": "S",
    "ъ": "",
    "ы": "Y",
    "ь": "",
    "э": "E",
    "ю": "Y",
    "я": "Y",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def transliterate(text: str) -> str:
    """Transliterate Mongolian Cyrillic text to lowercase Latin.

    Characters outside the table are passed through unchanged (then
    lower-cased).

    Args:
        text: Text to transliterate.

    Returns:
        Latin transliteration in lowercase.
    """
    return "".join(MONGOLIAN_TO_LATIN.get(char.lower(), char) for char in text).lower()


def latin_initial(name: str) -> str:
    """Upper-case Latin initial for the first letter of a name."""
    stripped = name.strip()
    if not stripped:
        return ""
    first = stripped[0]
    return CYRILLIC_INITIALS.get(first.lower(), first.upper())


def username_base(first_name: str, last_name: str, min_length: int = DEFAULT_MIN_LENGTH) -> str:
    """Build the collision-free-candidate base for a username.

    Args:
        first_name: Given name (any script).
        last_name: Family name (any script).
        min_length: Minimum length; shorter bases are padded with "0".

    Returns:
        Lowercase alphanumeric base, at least min_length long.
    """
    first_latin = transliterate(first_name.strip())
    last_latin = transliterate(last_name.strip())
    base = _NON_ALNUM.sub("", f"{first_latin}{last_latin[:1]}")
    return base.ljust(min_length, "0")


def generate_username(
    first_name: str,
    last_name: str,
    existing_usernames: Set[str],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_length: int = DEFAULT_MIN_LENGTH,
) -> str:
    """Generate a username absent from existing_usernames.

    The set is only read. Callers generating several usernames in one run
    must add each result to their pool before the next call.

    Args:
        first_name: Given name.
        last_name: Family name.
        existing_usernames: Usernames already taken.
        max_attempts: Candidates tried (base included) before giving up.
        min_length: Minimum username length.

    Returns:
        The first free candidate.

    Raises:
        GenerationExhaustedError: If every candidate within max_attempts
            is taken.
    """
    base = username_base(first_name, last_name, min_length)
    if base not in existing_usernames:
        return base

    for suffix in range(FIRST_SUFFIX, FIRST_SUFFIX + max_attempts - 1):
        candidate = f"{base}{suffix}"
        if candidate not in existing_usernames:
            return candidate

    raise GenerationExhaustedError(base, max_attempts)


def generate_password(phone: str, first_name: str, last_name: str) -> str:
    """Derive the temporary password for a person.

    Args:
        phone: Primary phone number (8 digits).
        first_name: Given name.
        last_name: Family name.

    Returns:
        Temporary password, e.g. "99123456BE$".
    """
    phone = phone.strip()
    first_name = first_name.strip()
    last_name = last_name.strip()
    digest = hashlib.sha256(f"{phone}|{first_name}|{last_name}".encode("utf-8")).digest()
    special = PASSWORD_SPECIAL_CHARS[digest[0] % len(PASSWORD_SPECIAL_CHARS)]
    return f"{phone}{latin_initial(first_name)}{latin_initial(last_name)}{special}"
