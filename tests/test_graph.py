"""Tests for bumpwright.graph."""

from __future__ import annotations

import pytest

from bumpwright.exceptions import ValidationError
from bumpwright.graph import topo_sort


class TestTopoSort:
    def test_chain(self) -> None:
        assert topo_sort({"a": ["b"], "b": ["c"], "c": []}) == ["c", "b", "a"]

    def test_independent_packages_sorted_alphabetically(self) -> None:
        assert topo_sort({"zeta": [], "alpha": [], "mid": []}) == ["alpha", "mid", "zeta"]

    def test_diamond(self) -> None:
        order = topo_sort({"app": ["left", "right"], "left": ["core"], "right": ["core"], "core": []})
        assert order[0] == "core"
        assert order[-1] == "app"

    def test_external_and_self_dependencies_ignored(self) -> None:
        assert topo_sort({"a": ["a", "requests"], "b": ["a"]}) == ["a", "b"]

    def test_cycle(self) -> None:
        with pytest.raises(ValidationError, match="cycle detected involving: a, b"):
            topo_sort({"a": ["b"], "b": ["a"], "c": []})

    def test_empty(self) -> None:
        assert topo_sort({}) == []
