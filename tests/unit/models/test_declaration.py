"""Tests for declaration models."""

import pytest

from typetest_runner.models.declaration import Declaration, DeclarationTree, Flags
from typetest_runner.testing.factories import (
    AssertionFactory,
    CaseFactory,
    GroupFactory,
)


def test_add_links_parent() -> None:
    """Adding a member points it back at its parent."""
    group = GroupFactory.build()
    case = CaseFactory.build()

    group.add(case)

    assert group.members == [case]
    assert case.parent is group


def test_group_accepts_groups_and_cases() -> None:
    """Groups hold groups and cases."""
    group = GroupFactory.build()
    group.add(GroupFactory.build())
    group.add(CaseFactory.build())

    assert group.validate() == []


def test_group_rejects_assertions() -> None:
    """An assertion cannot sit directly in a group."""
    group = GroupFactory.build()
    group.add(AssertionFactory.build())

    (diagnostic,) = group.validate()

    assert diagnostic.is_error
    assert diagnostic.text == ("'assertion' cannot be nested within 'group'.",)


def test_case_accepts_only_assertions() -> None:
    """Cases reject groups and other cases, one error per member."""
    case = CaseFactory.build()
    case.add(AssertionFactory.build())
    case.add(GroupFactory.build())
    case.add(CaseFactory.build())

    assert [d.text for d in case.validate()] == [
        ("'group' cannot be nested within 'case'.",),
        ("'case' cannot be nested within 'case'.",),
    ]


def test_assertion_accepts_nested_assertions() -> None:
    """Assertions may hold assertions but nothing else."""
    assertion = AssertionFactory.build()
    assertion.add(AssertionFactory.build())

    assert assertion.validate() == []

    assertion.add(CaseFactory.build())

    assert len(assertion.validate()) == 1


def test_walk_is_depth_first() -> None:
    """Walking yields declarations in source order, depth first."""
    tree = DeclarationTree(file_path="/a.test.ts")
    group = tree.add(GroupFactory.build(name="group"))
    case = group.add(CaseFactory.build(name="case"))
    case.add(AssertionFactory.build(name="expect"))
    tree.add(CaseFactory.build(name="last"))

    assert [d.name for d in tree.walk()] == ["group", "case", "expect", "last"]


def test_tree_has_only() -> None:
    """The tree knows whether any declaration is flagged only."""
    tree = DeclarationTree(file_path="/a.test.ts")
    group = tree.add(GroupFactory.build())
    case = group.add(CaseFactory.build())

    assert tree.has_only is False

    case.add(AssertionFactory.build(flags=Flags(only=True)))

    assert tree.has_only is True


def test_declaration_requires_a_kind_of_its_own() -> None:
    """Only the concrete kinds can be created."""
    with pytest.raises(TypeError, match="_accepts"):
        Declaration()  # type: ignore[abstract]
