"""Resolution of the effective run mode of each declaration."""

from dataclasses import dataclass, replace

from typetest_runner.models.declaration import DeclarationTree, TestDeclaration


@dataclass(frozen=True, kw_only=True)
class RunMode:
    """Effective mode of a declaration for one traversal.

    Modes are inherited down the tree; a bit once set stays set for the
    whole subtree, except ``skip`` which a position match clears.
    """

    fail: bool = False
    only: bool = False
    skip: bool = False
    todo: bool = False

    def is_skipped(self, has_only: bool) -> bool:
        """Skipped explicitly, or pruned because something else is ``only``."""
        return self.skip or (has_only and not self.only)


@dataclass(frozen=True, kw_only=True)
class RunFilters:
    """Run-time selection coming from configuration and the task."""

    only: str | None = None
    skip: str | None = None
    position: int | None = None


def resolve_run_mode(
    inherited: RunMode, declaration: TestDeclaration, filters: RunFilters
) -> RunMode:
    """Combine the inherited mode with a declaration's flags and filters.

    Precedence, in order:

    1. ``fail`` flag sets ``fail``
    2. ``only`` flag or a name matching the only-pattern sets ``only``
    3. ``skip`` flag or a name matching the skip-pattern sets ``skip``
    4. ``todo`` flag sets ``todo``
    5. a declaration starting at the requested position sets ``only`` and
       clears ``skip``, so explicit selection wins over any skip
    """
    flags = declaration.flags
    mode = inherited

    if flags.fail:
        mode = replace(mode, fail=True)
    if flags.only or _matches(filters.only, declaration.name):
        mode = replace(mode, only=True)
    if flags.skip or _matches(filters.skip, declaration.name):
        mode = replace(mode, skip=True)
    if flags.todo:
        mode = replace(mode, todo=True)
    if filters.position is not None and declaration.start == filters.position:
        mode = replace(mode, only=True, skip=False)

    return mode


def has_only(tree: DeclarationTree, filters: RunFilters) -> bool:
    """Whether the file runs with only-pruning semantics."""
    return (
        tree.has_only or filters.only is not None or filters.position is not None
    )


def _matches(pattern: str | None, name: str) -> bool:
    return pattern is not None and pattern.lower() in name.lower()
