"""Tests for Slice and Page."""

import dataclasses
from datetime import date

import pytest

from slicer.slices import Page, Slice


class TestSlice:
    def test_structural_equality_and_hash(self):
        assert Slice(0, 128) == Slice(0, 128)
        assert hash(Slice(0, 128)) == hash(Slice(0, 128))
        assert {Slice(0, 128), Slice(0, 128), Slice(128, 256)} == {Slice(0, 128), Slice(128, 256)}

    def test_set_difference(self):
        recorded = {Slice(0, 1), Slice(1, 2), Slice(2, 3)}
        completed = {Slice(1, 2)}
        assert recorded - completed == {Slice(0, 1), Slice(2, 3)}

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Slice(0, 1).begin = 5

    def test_str(self):
        assert str(Slice(0, 128)) == "0-128"
        assert str(Slice(date(2026, 1, 1), date(2026, 1, 2))) == "2026-01-01-2026-01-02"


class TestPage:
    def test_defaults(self):
        page = Page([1, 2, 3])
        assert page.has_next is False
        assert page.page_index == 0
        assert page.extra == {}
        assert len(page) == 3
        assert not page.is_empty

    @pytest.mark.parametrize("data", [None, [], ()])
    def test_empty(self, data):
        page = Page(data)
        assert page.is_empty
        assert len(page) == 0

    def test_extra_not_shared(self):
        Page([1]).extra["cursor"] = 10
        assert Page([1]).extra == {}
