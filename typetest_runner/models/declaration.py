"""Declaration tree produced by a collector for one test file.

The tree is built by an external collector and only read by the runner.
There are exactly three kinds of declarations:

* ``Group`` - a named container of groups and cases
* ``Case`` - a named test holding assertions
* ``Assertion`` - a single type expectation, which may nest other assertions
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar

from typetest_runner.models.diagnostic import Diagnostic


@dataclass(frozen=True, kw_only=True)
class Flags:
    """Flags set on a declaration in source (e.g. ``test.skip``)."""

    fail: bool = False
    only: bool = False
    skip: bool = False
    todo: bool = False


@dataclass(kw_only=True, eq=False)
class Declaration(ABC):
    """Common shape of all declarations."""

    kind: ClassVar[str]

    name: str = ""
    start: int = 0
    flags: Flags = field(default_factory=Flags)
    members: list["TestDeclaration"] = field(default_factory=list)
    parent: "Group | Case | Assertion | None" = field(default=None, repr=False)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def add(self, member: "TestDeclaration") -> "TestDeclaration":
        """Append a member and point its parent back at this declaration."""
        member.parent = self  # type: ignore[assignment]
        self.members.append(member)
        return member

    def validate(self) -> list[Diagnostic]:
        """Return one error per member that cannot be nested here."""
        return [
            Diagnostic.error(
                f"'{member.kind}' cannot be nested within '{self.kind}'."
            )
            for member in self.members
            if not self._accepts(member)
        ]

    @abstractmethod
    def _accepts(self, member: "TestDeclaration") -> bool:
        """Whether ``member`` may be nested directly in this declaration."""

    def walk(self) -> Iterator["TestDeclaration"]:
        """Yield every declaration below this one, depth first."""
        for member in self.members:
            yield member
            yield from member.walk()


@dataclass(kw_only=True, eq=False)
class Group(Declaration):
    """A named container (``describe``) of groups and cases."""

    kind: ClassVar[str] = "group"

    def _accepts(self, member: "TestDeclaration") -> bool:
        return not isinstance(member, Assertion)


@dataclass(kw_only=True, eq=False)
class Case(Declaration):
    """A single test (``test`` / ``it``) holding assertions."""

    kind: ClassVar[str] = "case"

    def _accepts(self, member: "TestDeclaration") -> bool:
        return isinstance(member, Assertion)


@dataclass(kw_only=True, eq=False)
class Assertion(Declaration):
    """A type expectation such as ``expect<T>().type.toBe<U>()``.

    ``source`` and ``target`` hold the collector's argument references; the
    runner only hands them over to the evaluator.
    """

    kind: ClassVar[str] = "assertion"

    matcher_name: str = ""
    is_negated: bool = False
    source: Sequence[Any] = field(default_factory=tuple)
    target: Sequence[Any] = field(default_factory=tuple)

    def _accepts(self, member: "TestDeclaration") -> bool:
        return isinstance(member, Assertion)


TestDeclaration = Group | Case | Assertion


@dataclass(kw_only=True, eq=False)
class DeclarationTree:
    """Top level of a collected test file.

    ``diagnostics`` holds collection diagnostics that fall outside of any
    declaration; these fail the whole file.
    """

    file_path: str
    members: list[TestDeclaration] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def add(self, member: TestDeclaration) -> TestDeclaration:
        member.parent = None
        self.members.append(member)
        return member

    def walk(self) -> Iterator[TestDeclaration]:
        for member in self.members:
            yield member
            yield from member.walk()

    @property
    def has_only(self) -> bool:
        """Whether any declaration in the tree is literally flagged ``only``."""
        return any(declaration.flags.only for declaration in self.walk())
