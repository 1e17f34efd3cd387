"""Tests for run mode resolution."""

import pytest

from typetest_runner.models.declaration import DeclarationTree, Flags
from typetest_runner.run_mode import RunFilters, RunMode, has_only, resolve_run_mode
from typetest_runner.testing.factories import CaseFactory, GroupFactory


class TestResolveRunMode:
    """Tests for resolve_run_mode."""

    @pytest.mark.parametrize(
        ("flags", "expected"),
        [
            (Flags(), RunMode()),
            (Flags(fail=True), RunMode(fail=True)),
            (Flags(only=True), RunMode(only=True)),
            (Flags(skip=True), RunMode(skip=True)),
            (Flags(todo=True), RunMode(todo=True)),
            (Flags(only=True, skip=True), RunMode(only=True, skip=True)),
        ],
    )
    def test_flags_set_matching_bits(self, flags: Flags, expected: RunMode) -> None:
        """Each flag sets its own bit."""
        case = CaseFactory.build(name="adds numbers", flags=flags)

        assert resolve_run_mode(RunMode(), case, RunFilters()) == expected

    def test_inherited_bits_stay_set(self) -> None:
        """A declaration cannot clear bits set by its ancestors."""
        case = CaseFactory.build(name="adds numbers")

        mode = resolve_run_mode(RunMode(fail=True, todo=True), case, RunFilters())

        assert mode == RunMode(fail=True, todo=True)

    def test_only_pattern_matches_name_case_insensitively(self) -> None:
        """The only-pattern is a case-insensitive substring match."""
        case = CaseFactory.build(name="Handles Unions")

        mode = resolve_run_mode(RunMode(), case, RunFilters(only="unions"))

        assert mode.only is True

    def test_skip_pattern_matches_name(self) -> None:
        """The skip-pattern sets skip on matching names."""
        case = CaseFactory.build(name="handles unions")

        mode = resolve_run_mode(RunMode(), case, RunFilters(skip="UNION"))

        assert mode.skip is True

    def test_patterns_ignore_other_names(self) -> None:
        """Names not containing the pattern are unaffected."""
        case = CaseFactory.build(name="handles tuples")

        mode = resolve_run_mode(
            RunMode(), case, RunFilters(only="unions", skip="unions")
        )

        assert mode == RunMode()

    def test_position_match_selects_and_clears_skip(self) -> None:
        """Explicit selection by position wins over skip."""
        case = CaseFactory.build(
            name="handles tuples", start=42, flags=Flags(skip=True)
        )

        mode = resolve_run_mode(RunMode(skip=True), case, RunFilters(position=42))

        assert mode == RunMode(only=True)

    def test_position_elsewhere_changes_nothing(self) -> None:
        """A position not at the declaration's start has no effect."""
        case = CaseFactory.build(name="handles tuples", start=42)

        mode = resolve_run_mode(RunMode(), case, RunFilters(position=7))

        assert mode == RunMode()


class TestRunMode:
    """Tests for RunMode.is_skipped."""

    def test_skip_bit_skips(self) -> None:
        """Skip always skips."""
        assert RunMode(skip=True, only=True).is_skipped(has_only=True) is True

    def test_only_pruning(self) -> None:
        """Without only, a declaration is pruned when the file has only."""
        assert RunMode().is_skipped(has_only=True) is True
        assert RunMode(only=True).is_skipped(has_only=True) is False

    def test_no_pruning_without_only(self) -> None:
        """Nothing is pruned when the file has no only signal."""
        assert RunMode().is_skipped(has_only=False) is False


class TestHasOnly:
    """Tests for has_only."""

    def test_false_for_plain_tree(self) -> None:
        """A tree without only flags or filters has no only."""
        tree = DeclarationTree(file_path="/a.test.ts")
        tree.add(CaseFactory.build())

        assert has_only(tree, RunFilters()) is False

    def test_nested_only_flag(self) -> None:
        """An only flag anywhere in the tree counts."""
        tree = DeclarationTree(file_path="/a.test.ts")
        group = tree.add(GroupFactory.build())
        group.add(CaseFactory.build(flags=Flags(only=True)))

        assert has_only(tree, RunFilters()) is True

    @pytest.mark.parametrize(
        "filters", [RunFilters(only="anything"), RunFilters(position=0)]
    )
    def test_filters_force_only(self, filters: RunFilters) -> None:
        """An only-pattern or a position forces only-pruning."""
        tree = DeclarationTree(file_path="/a.test.ts")

        assert has_only(tree, filters) is True
