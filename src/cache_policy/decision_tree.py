"""Compile ordered first-match lists into nested conditional trees.

Edge-cache scripting targets cannot scan a list at run time; they need an
``if / elseif / else`` chain. The tree produced here is language neutral:
conditions describe *what* is tested (host equality, path match, AND/OR),
and renderers only translate that structure into target syntax.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from .behaviors import Backend, Behavior, Configuration
from .common.exceptions import MisplacedWildcardBehaviorError
from .common.logging import get_logger
from .resolution import ResolvedPolicy, dereference, host_matches
from .routing.patterns import Matcher

logger = get_logger(__name__)

T = TypeVar("T")


class Condition:
    """Base class for language-neutral branch conditions."""

    def evaluate(self, host: str, path: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class _Constant(Condition):
    value: bool

    def evaluate(self, host: str, path: str) -> bool:
        return self.value

    def __repr__(self) -> str:
        return "ALWAYS" if self.value else "NEVER"


ALWAYS = _Constant(True)
NEVER = _Constant(False)


@dataclass(frozen=True)
class HostEquals(Condition):
    """Request host equals a backend alias."""

    host: str

    def evaluate(self, host: str, path: str) -> bool:
        return host_matches(self.host, host)


@dataclass(frozen=True)
class PathMatches(Condition):
    """Request path matches a compiled path pattern."""

    matcher: Matcher

    def evaluate(self, host: str, path: str) -> bool:
        return self.matcher.matches(path)


@dataclass(frozen=True)
class AnyOf(Condition):
    conditions: tuple[Condition, ...]

    def evaluate(self, host: str, path: str) -> bool:
        return any(c.evaluate(host, path) for c in self.conditions)


@dataclass(frozen=True)
class AllOf(Condition):
    conditions: tuple[Condition, ...]

    def evaluate(self, host: str, path: str) -> bool:
        return all(c.evaluate(host, path) for c in self.conditions)


def any_of(conditions: Iterable[Condition]) -> Condition:
    """OR-compose conditions; an empty list is statically false."""
    terms = [c for c in conditions if c is not NEVER]
    if any(c is ALWAYS for c in terms):
        return ALWAYS
    if not terms:
        return NEVER
    if len(terms) == 1:
        return terms[0]
    return AnyOf(tuple(terms))


def all_of(conditions: Iterable[Condition]) -> Condition:
    """AND-compose conditions; an empty list is statically true."""
    terms = [c for c in conditions if c is not ALWAYS]
    if any(c is NEVER for c in terms):
        return NEVER
    if not terms:
        return ALWAYS
    if len(terms) == 1:
        return terms[0]
    return AllOf(tuple(terms))


@dataclass(frozen=True)
class Branch(Generic[T]):
    """One arm of a decision tree; ``condition`` is None for ``else``."""

    condition: Condition | None
    payload: T


@dataclass(frozen=True)
class DecisionTree(Generic[T]):
    """Branches in evaluation order: ``if``, then ``elseif``s, then ``else``."""

    branches: tuple[Branch[T], ...]

    @property
    def is_unconditional(self) -> bool:
        """A single branch with no wrapping condition."""
        return len(self.branches) == 1 and self.branches[0].condition is None

    @property
    def has_else(self) -> bool:
        return bool(self.branches) and self.branches[-1].condition is None

    def evaluate(self, host: str, path: str) -> T | None:
        """Walk the branches like the rendered script would."""
        for branch in self.branches:
            if branch.condition is None or branch.condition.evaluate(host, path):
                return branch.payload
        return None

    def __iter__(self):
        return iter(self.branches)

    def __len__(self) -> int:
        return len(self.branches)


def compile_tree(
    entries: Sequence[tuple[Condition | None, T]], *, owner: str = ""
) -> DecisionTree[T]:
    """Compile an ordered (condition, payload) list into a decision tree.

    Args:
        entries: Ordered pairs; a None condition matches everything
        owner: Backend id used in error messages

    Returns:
        DecisionTree equivalent to first-match scanning of entries

    Raises:
        MisplacedWildcardBehaviorError: If a None condition is not last.
            Configurations are checked for this before any tree is built.
    """
    for index, (condition, _) in enumerate(entries[:-1]):
        if condition is None:
            raise MisplacedWildcardBehaviorError(owner, index)

    branches: list[Branch[T]] = []
    for condition, payload in entries:
        if condition is NEVER:
            continue
        if condition is None or condition is ALWAYS:
            branches.append(Branch(None, payload))
            break
        branches.append(Branch(condition, payload))

    # A wildcard left alone after dead-branch elimination is emitted as one
    # unconditional branch. Inherited behavior; the intent was never stated.
    return DecisionTree(tuple(branches))


def path_condition(behavior: Behavior) -> Condition | None:
    """OR of the behavior's path matchers; None for match-all behaviors."""
    if behavior.patterns is None:
        return None
    return any_of(PathMatches(p.matcher) for p in behavior.patterns)


def host_condition(backend: Backend) -> Condition:
    return any_of(HostEquals(alias) for alias in backend.aliases)


def backend_tree(
    configuration: Configuration, backend: Backend
) -> DecisionTree[ResolvedPolicy]:
    """Path/behavior selection tree for one backend."""
    entries = [
        (path_condition(behavior), dereference(configuration, backend, behavior))
        for behavior in backend.ordered_behaviors
    ]
    return compile_tree(entries, owner=backend.id)


def render_decision_tree(
    configuration: Configuration,
) -> DecisionTree[DecisionTree[ResolvedPolicy]]:
    """Build the two-level host/path decision tree for a configuration.

    The outer tree selects a backend by host alias, in declared order, with
    the primary backend as the final ``else``. Each leaf is the backend's
    inner path tree whose payloads are fully dereferenced policies.
    """
    entries: list[tuple[Condition | None, DecisionTree[ResolvedPolicy]]] = [
        (host_condition(backend), backend_tree(configuration, backend))
        for backend in configuration
    ]
    entries.append((None, backend_tree(configuration, configuration.primary)))
    tree = compile_tree(entries)

    logger.debug(
        "Decision tree rendered",
        backends=len(configuration),
        host_branches=len(tree),
    )
    return tree
