# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for username and temporary password generation."""

import pytest

from src.domains.provisioning.credentials import (
    PASSWORD_SPECIAL_CHARS,
    generate_password,
    generate_username,
    latin_initial,
    transliterate,
    username_base,
)
from src.domains.provisioning.exceptions import GenerationExhaustedError


class TestTransliterate:
    """Tests for Mongolian Cyrillic to Latin transliteration."""

    def test_basic_name(self) -> None:
        """Test a name made of single-letter mappings."""
        assert transliterate("Баатар") == "baatar"

    def test_multi_letter_mappings(self) -> None:
        """Test letters that map to two Latin letters."""
        assert transliterate("Хонгорзул") == "khongorzul"
        assert transliterate("Цэцэг") == "tsetseg"

    def test_mongolian_vowels(self) -> None:
        """Test Ө and Ү map to u."""
        assert transliterate("Мөнх") == "munkh"
        assert transliterate("Түвшин") == "tuvshin"

    def test_signs_are_dropped(self) -> None:
        """Test hard and soft signs disappear."""
        assert transliterate("Ань") == "an"

    def test_latin_passes_through(self) -> None:
        """Test Latin text is only lower-cased."""
        assert transliterate("John") == "john"


class TestUsernameBase:
    """Tests for the collision-free base."""

    def test_first_name_plus_last_initial(self) -> None:
        """Test {firstName}{lastNameInitial} format."""
        assert username_base("Хонгорзул", "Батбаяр") == "khongorzulb"

    def test_short_base_is_padded(self) -> None:
        """Test bases shorter than the minimum are padded with zeros."""
        assert username_base("Ли", "Ан") == "lia0"
        assert username_base("Ли", "Ан", min_length=6) == "lia000"

    def test_non_alphanumeric_removed(self) -> None:
        """Test punctuation and spaces are stripped."""
        assert username_base("Мөнх-Эрдэнэ", "Дорж") == "munkherdened"

    def test_surrounding_whitespace_ignored(self) -> None:
        """Test names are stripped before transliteration."""
        assert username_base("  Баатар ", " Эрдэнэ") == "baatare"


class TestGenerateUsername:
    """Tests for generate_username."""

    def test_free_base_is_returned(self) -> None:
        """Test the base is used when nobody has it."""
        assert generate_username("Баатар", "Эрдэнэ", set()) == "baatare"

    def test_collision_appends_two(self) -> None:
        """Test the first collision suffix is 2."""
        assert generate_username("Баатар", "Эрдэнэ", {"baatare"}) == "baatare2"

    def test_collision_skips_taken_suffixes(self) -> None:
        """Test taken suffixes are skipped."""
        taken = {"baatare", "baatare2", "baatare3"}
        assert generate_username("Баатар", "Эрдэнэ", taken) == "baatare4"

    def test_does_not_mutate_pool(self) -> None:
        """Test the existing set is only read."""
        taken = {"baatare"}
        generate_username("Баатар", "Эрдэнэ", taken)
        assert taken == {"baatare"}

    def test_sequential_calls_yield_distinct_usernames(self) -> None:
        """Test N calls with pool updates give N distinct usernames."""
        pool: set[str] = set()
        for _ in range(50):
            pool.add(generate_username("Баатар", "Эрдэнэ", pool))

        assert len(pool) == 50

    def test_exhaustion_raises(self) -> None:
        """Test the attempt bound terminates the search."""
        taken = {"baatare", "baatare2", "baatare3"}

        with pytest.raises(GenerationExhaustedError) as exc_info:
            generate_username("Баатар", "Эрдэнэ", taken, max_attempts=3)

        assert exc_info.value.base == "baatare"
        assert exc_info.value.attempts == 3
        assert exc_info.value.code == "generation_exhausted"

    def test_single_attempt_only_tries_base(self) -> None:
        """Test max_attempts=1 gives up as soon as the base is taken."""
        with pytest.raises(GenerationExhaustedError):
            generate_username("Баатар", "Эрдэнэ", {"baatare"}, max_attempts=1)


class TestGeneratePassword:
    """Tests for generate_password."""

    def test_format(self) -> None:
        """Test {phone}{FirstInitial}{LastInitial}{special} format."""
        password = generate_password("99123456", "Баатар", "Эрдэнэ")

        assert password.startswith("99123456BE")
        assert len(password) == 11
        assert password[-1] in PASSWORD_SPECIAL_CHARS

    def test_is_deterministic(self) -> None:
        """Test the same inputs always yield the same password."""
        first = generate_password("99123456", "Хонгорзул", "Батбаяр")

        for _ in range(20):
            assert generate_password("99123456", "Хонгорзул", "Батбаяр") == first

    def test_whitespace_does_not_change_password(self) -> None:
        """Test inputs are stripped before derivation."""
        assert generate_password(" 99123456 ", " Хонгорзул", "Батбаяр ") == generate_password(
            "99123456", "Хонгорзул", "Батбаяр"
        )

    def test_initials_from_cyrillic(self) -> None:
        """Test initials are upper-case Latin letters."""
        assert generate_password("99123456", "Хонгорзул", "Батбаяр").startswith("99123456HB")

    def test_latin_initial_of_latin_name(self) -> None:
        """Test Latin names keep their own initial."""
        assert latin_initial("john") == "J"
        assert latin_initial("") == ""
