"""
Curve dependency graph.

Curves are nodes; an edge from A to B means B's calibrator reads A. The
graph is discovered from a seed set by asking each item for its parents,
so parents that were not passed in explicitly are still ordered.

Iteration order is parents first, which is the order curves must be fitted
in. Cycles are detected with Kahn's algorithm when the graph is built.

Also provides tenor selection across a curve set, used to build the bump
groups of a sensitivity run.
"""

from collections import deque
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple
import logging

from .curves.tenor import CurveTenor
from .errors import CyclicDependencyError

logger = logging.getLogger(__name__)


def _calibrator_parents(curve) -> List:
    enumerate_parents = getattr(curve, "enumerate_parent_curves", None)
    return list(enumerate_parents()) if enumerate_parents is not None else []


class DependencyGraph:
    """
    Directed acyclic graph over items with a parent lookup.

    Items are tracked by identity, so curves need not be hashable.

    Args:
        items: Seed items
        get_parents: Returns the items a given item depends on

    Raises:
        CyclicDependencyError: If an item transitively depends on itself
    """

    def __init__(self, items: Iterable, get_parents: Callable[[object], Iterable] = _calibrator_parents):
        self._get_parents = get_parents
        self._items: Dict[int, object] = {}
        self._parents: Dict[int, List[int]] = {}
        self._children: Dict[int, List[int]] = {}
        self._seeds: List[int] = []

        for item in items:
            if id(item) not in self._seeds:
                self._seeds.append(id(item))
            self._discover(item)

        self._order = self._sort()
        logger.debug("Dependency graph over %d items, %d roots", len(self._order), len(self.roots))

    def _discover(self, root) -> None:
        stack = [root]
        while stack:
            item = stack.pop()
            key = id(item)
            if key in self._items:
                continue
            self._items[key] = item
            self._children.setdefault(key, [])
            parents = list(self._get_parents(item))
            self._parents[key] = []
            for parent in parents:
                pkey = id(parent)
                if pkey not in self._parents[key]:
                    self._parents[key].append(pkey)
                    self._children.setdefault(pkey, []).append(key)
            stack.extend(reversed(parents))

    def _sort(self) -> List[int]:
        """Kahn's algorithm; ties keep discovery order."""
        indegree = {key: len(parents) for key, parents in self._parents.items()}
        queue = deque(key for key in self._items if indegree[key] == 0)
        order: List[int] = []
        while queue:
            key = queue.popleft()
            order.append(key)
            for child in self._children[key]:
                indegree[child] -= 1
                if indegree[child] == 0:
                    queue.append(child)

        if len(order) != len(self._items):
            done = set(order)
            cyclic = [self._items[key] for key in self._items if key not in done]
            raise CyclicDependencyError(cyclic)
        return order

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator:
        return iter(self.reverse_ordered())

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, item: object) -> bool:
        return id(item) in self._items

    def reverse_ordered(self) -> List:
        """Items with every parent before its children."""
        return [self._items[key] for key in self._order]

    def ordered(self) -> List:
        """Items with every child before its parents."""
        return [self._items[key] for key in reversed(self._order)]

    @property
    def roots(self) -> List:
        """Items without parents."""
        return [self._items[key] for key in self._order if not self._parents[key]]

    @property
    def seeds(self) -> List:
        """Items the graph was built from, in the order given."""
        return [self._items[key] for key in self._seeds]

    def parents_of(self, item) -> List:
        return [self._items[key] for key in self._parents[id(item)]]

    def children_of(self, item) -> List:
        return [self._items[key] for key in self._children[id(item)]]

    def descendants(self, items: Iterable) -> List:
        """
        ``items`` and everything that depends on them, parents first.

        These are the curves that need refitting after ``items`` change.
        """
        marked = set()
        queue = deque(id(item) for item in items if id(item) in self._items)
        while queue:
            key = queue.popleft()
            if key in marked:
                continue
            marked.add(key)
            queue.extend(self._children[key])
        return [self._items[key] for key in self._order if key in marked]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def for_each(self, action: Callable[[object], object]) -> List:
        """Apply ``action`` to each item, parents first; returns the results."""
        return [action(item) for item in self.reverse_ordered()]

    def parallel_for_each(self, action: Callable[[object], object], max_workers: Optional[int] = None) -> List:
        """
        Apply ``action`` on a thread pool; an item starts once all its
        parents have finished. Results come back in ``reverse_ordered`` order.

        The first exception raised by ``action`` is re-raised after
        outstanding work is cancelled.
        """
        results: Dict[int, object] = {}
        pending = {key: set(parents) for key, parents in self._parents.items()}
        running = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            def submit_ready():
                for key in self._order:
                    if key in pending and not pending[key]:
                        del pending[key]
                        future = executor.submit(action, self._items[key])
                        running[future] = key

            submit_ready()
            while running:
                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in done:
                    key = running.pop(future)
                    try:
                        results[key] = future.result()
                    except Exception:
                        for other in running:
                            other.cancel()
                        raise
                    for child in self._children[key]:
                        if child in pending:
                            pending[child].discard(key)
                submit_ready()

        return [results[key] for key in self._order]

    def select_tenors(self, predicate: Callable[[CurveTenor], bool],
                      grouping: "TenorGrouping" = None) -> List["TenorGroup"]:
        """Tenors across the graph's curves, parents first; see :func:`select_tenors`."""
        return select_tenors(self.reverse_ordered(), predicate, grouping or TenorGrouping.INDIVIDUAL)

    def __repr__(self) -> str:
        names = [str(getattr(item, "name", item)) for item in self.reverse_ordered()]
        return f"DependencyGraph({names})"


def to_dependency_graph(curves: Iterable, get_parents: Optional[Callable] = None) -> DependencyGraph:
    """Build the graph of ``curves``; parents default to each calibrator's."""
    return DependencyGraph(curves, get_parents or _calibrator_parents)


def get_descendants(items: Iterable, population: Iterable,
                    get_parents: Optional[Callable] = None) -> List:
    """Members of ``population`` that are ``items`` or depend on them, parents first."""
    graph = DependencyGraph(population, get_parents or _calibrator_parents)
    return graph.descendants(items)


def has_cyclic_dependency(items: Iterable, get_parents: Optional[Callable] = None) -> bool:
    try:
        DependencyGraph(items, get_parents or _calibrator_parents)
    except CyclicDependencyError:
        return True
    return False


# ----------------------------------------------------------------------
# Tenor selection
# ----------------------------------------------------------------------

class TenorGrouping(Enum):
    """How selected tenors are grouped into bump scenarios."""
    INDIVIDUAL = "Individual"
    BY_NAME = "ByName"
    BY_CURVE = "ByCurve"
    ALL = "All"


@dataclass(frozen=True, eq=False)
class TenorGroup:
    """
    Tenors bumped together.

    Attributes:
        label: Group label (tenor name, curve name or "ALL")
        members: (curve, tenor) pairs
    """
    label: str
    members: Tuple[Tuple[object, CurveTenor], ...]

    @property
    def curves(self) -> List:
        seen: List = []
        for curve, _ in self.members:
            if not any(curve is c for c in seen):
                seen.append(curve)
        return seen

    @property
    def curve_label(self) -> str:
        return "+".join(str(c.name) for c in self.curves)

    @property
    def tenor_label(self) -> str:
        names: List[str] = []
        for _, tenor in self.members:
            if tenor.name not in names:
                names.append(tenor.name)
        return names[0] if len(names) == 1 else self.label

    def __len__(self) -> int:
        return len(self.members)


def select_tenors(
    curves: Iterable,
    predicate: Callable[[CurveTenor], bool],
    grouping: TenorGrouping = TenorGrouping.INDIVIDUAL
) -> List[TenorGroup]:
    """
    Select tenors matching ``predicate`` across ``curves``.

    Groups come back in curve order, then maturity order; empty groups are
    not returned.
    """
    pairs = [(curve, tenor) for curve in curves
             for tenor in getattr(curve, "tenors", ()) if predicate(tenor)]

    if grouping == TenorGrouping.INDIVIDUAL:
        return [TenorGroup(tenor.name, ((curve, tenor),)) for curve, tenor in pairs]

    if grouping == TenorGrouping.ALL:
        return [TenorGroup("ALL", tuple(pairs))] if pairs else []

    buckets: Dict[object, List[Tuple[object, CurveTenor]]] = {}
    labels: Dict[object, str] = {}
    for curve, tenor in pairs:
        if grouping == TenorGrouping.BY_NAME:
            key, label = tenor.name, tenor.name
        else:
            key, label = id(curve), str(curve.name)
        buckets.setdefault(key, []).append((curve, tenor))
        labels[key] = label
    return [TenorGroup(labels[key], tuple(members)) for key, members in buckets.items()]


def name_selector(names: Iterable[str]) -> Callable[[CurveTenor], bool]:
    """Predicate selecting tenors by name."""
    wanted = frozenset(names)
    return lambda tenor: tenor.name in wanted


def all_tenors(tenor: CurveTenor) -> bool:
    return True


__all__ = [
    "DependencyGraph",
    "to_dependency_graph",
    "get_descendants",
    "has_cyclic_dependency",
    "TenorGrouping",
    "TenorGroup",
    "select_tenors",
    "name_selector",
    "all_tenors",
]
