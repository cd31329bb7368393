"""
Tests for listing slugs.
"""

import re

from aashiyana.utils.slug import generate_slug, slugify


class TestSlugify:
    def test_collapses_punctuation_and_spaces(self):
        assert slugify("  Sunny 2BHK -- near the River!! ") == "sunny-2bhk-near-the-river"

    def test_non_latin_title_falls_back(self):
        assert slugify("घर") == "property"
        assert slugify("") == "property"


class TestGenerateSlug:
    def test_has_millisecond_suffix(self):
        slug = generate_slug("Garden Villa")

        assert re.fullmatch(r"garden-villa-\d{13,}", slug)

    def test_suffixes_never_repeat(self):
        stamps = [int(generate_slug("same title").rsplit("-", 1)[1]) for _ in range(200)]

        assert len(set(stamps)) == 200
        assert stamps == sorted(stamps)
