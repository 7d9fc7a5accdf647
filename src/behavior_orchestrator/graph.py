"""
Behavior Graph Scheduling

Topological ordering, dependency chain resolution, transitive dependents and
the auth/non-auth partition used by both execution strategies.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .errors import CycleDetectedError, DependencyNotFoundError
from .instructions import is_auth_behavior
from .main import AUTH_ORDER, Behavior, ChainStep

logger = logging.getLogger(__name__)


def _direct_dependents(behaviors: Dict[str, Behavior]) -> Dict[str, List[str]]:
    """Reverse adjacency: dependency id -> ids that directly depend on it"""
    dependents: Dict[str, List[str]] = defaultdict(list)
    for behavior_id, behavior in behaviors.items():
        for dep_id in behavior.dependency_ids:
            if dep_id not in behaviors:
                raise DependencyNotFoundError(dep_id, required_by=behavior_id)
            dependents[dep_id].append(behavior_id)
    return dependents


def topological_sort(behaviors: Dict[str, Behavior]) -> List[Behavior]:
    """
    Order behaviors so every behavior follows all of its dependencies.

    Kahn's algorithm with a FIFO queue seeded in insertion order, so ties
    keep declaration order.

    Raises:
        DependencyNotFoundError: A dependency id is not in the graph
        CycleDetectedError: Some behaviors can never be scheduled
    """
    dependents = _direct_dependents(behaviors)
    in_degree: Dict[str, int] = {
        behavior_id: len(behavior.dependencies)
        for behavior_id, behavior in behaviors.items()
    }

    queue = deque(behavior_id for behavior_id, degree in in_degree.items() if degree == 0)
    ordered: List[Behavior] = []

    while queue:
        current = queue.popleft()
        ordered.append(behaviors[current])

        for dependent_id in dependents.get(current, []):
            in_degree[dependent_id] -= 1
            if in_degree[dependent_id] == 0:
                queue.append(dependent_id)

    if len(ordered) != len(behaviors):
        scheduled = {behavior.id for behavior in ordered}
        raise CycleDetectedError(
            [behavior_id for behavior_id in behaviors if behavior_id not in scheduled]
        )

    return ordered


def build_dependency_chain(
    target_id: str,
    behaviors: Dict[str, Behavior],
    strict: bool = False,
) -> List[ChainStep]:
    """
    Resolve the ordered chain of behaviors needed to reach target_id.

    Dependencies come first (depth-first, in declaration order) and the
    target is last. Each behavior appears once, carrying the scenario name
    requested by the first dependency edge that reached it.

    A cycle yields a partial chain and a warning, or CycleDetectedError
    when strict is set.
    """
    if target_id not in behaviors:
        raise DependencyNotFoundError(target_id)

    chain: List[ChainStep] = []
    _resolve_chain(target_id, None, None, behaviors, chain, set(), [], strict)
    return chain


def _resolve_chain(
    behavior_id: str,
    scenario_name: Optional[str],
    required_by: Optional[str],
    behaviors: Dict[str, Behavior],
    chain: List[ChainStep],
    visited: Set[str],
    path: List[str],
    strict: bool,
) -> None:
    if behavior_id in visited:
        if behavior_id in path:
            cycle = path[path.index(behavior_id):] + [behavior_id]
            if strict:
                raise CycleDetectedError(cycle)
            logger.warning(
                f"Cycle in dependency chain: {' -> '.join(cycle)}; continuing with a partial chain"
            )
        return
    visited.add(behavior_id)

    behavior = behaviors.get(behavior_id)
    if behavior is None:
        raise DependencyNotFoundError(behavior_id, required_by=required_by)

    path.append(behavior_id)
    for dep in behavior.dependencies:
        _resolve_chain(
            dep.behavior_id, dep.scenario_name, behavior_id,
            behaviors, chain, visited, path, strict,
        )
    path.pop()

    chain.append(ChainStep(behavior=behavior, scenario_name=scenario_name))


def build_transitive_dependents_map(behaviors: Dict[str, Behavior]) -> Dict[str, Set[str]]:
    """Map every behavior id to the ids of all behaviors that transitively depend on it"""
    dependents = _direct_dependents(behaviors)
    transitive: Dict[str, Set[str]] = {}

    for behavior_id in behaviors:
        seen: Set[str] = set()
        queue = deque(dependents.get(behavior_id, []))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(d for d in dependents.get(current, []) if d not in seen)
        transitive[behavior_id] = seen

    return transitive


def cascade_skip(failed_id: str, transitive_map: Dict[str, Set[str]], skip_set: Set[str]) -> Set[str]:
    """Add every transitive dependent of failed_id to skip_set; returns the newly skipped ids"""
    added = transitive_map.get(failed_id, set()) - skip_set
    skip_set.update(added)
    if added:
        logger.info(f"Failure of {failed_id} cascades to {len(added)} dependent behavior(s)")
    return added


def partition_behaviors(
    ordered: Sequence[Behavior],
    auth_order: Optional[Sequence[str]] = None,
) -> Tuple[List[Behavior], List[Behavior]]:
    """
    Split behaviors into the auth sequence and everything else.

    Known auth ids run in auth_order; any other auth-like behavior follows
    them in the order given. Non-auth behaviors keep their order.
    """
    order = list(auth_order if auth_order is not None else AUTH_ORDER)
    auth_by_id: Dict[str, Behavior] = {}
    non_auth: List[Behavior] = []

    for behavior in ordered:
        if behavior.id in order or is_auth_behavior(behavior.id):
            auth_by_id[behavior.id] = behavior
        else:
            non_auth.append(behavior)

    auth = [auth_by_id[behavior_id] for behavior_id in order if behavior_id in auth_by_id]
    auth.extend(b for b in ordered if b.id in auth_by_id and b.id not in order)
    return auth, non_auth
