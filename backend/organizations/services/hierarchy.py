"""
Parent/child tree operations over flat node lists.

Nodes carry only an id and a parent id, so the same functions serve
divisions and positions. Parent links are plain foreign keys and nothing at
the database level prevents a cycle, so every traversal keeps a visited set.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Set

from core.errors import HierarchyCycleError, NodeNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class HierarchyNode:
    id: Hashable
    parent_id: Optional[Hashable] = None
    level: int = 0
    data: Dict[str, Any] = field(default_factory=dict)
    children: List["HierarchyNode"] = field(default_factory=list)

    def as_dict(self, _seen: Optional[Set[Hashable]] = None) -> Dict[str, Any]:
        seen = set() if _seen is None else _seen
        seen.add(self.id)
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "level": self.level,
            **self.data,
            "children": [c.as_dict(seen) for c in self.children if c.id not in seen],
        }


def _index(nodes: Iterable[HierarchyNode]) -> Dict[Hashable, HierarchyNode]:
    by_id = {}
    for node in nodes:
        by_id[node.id] = node
    return by_id


def children_index(nodes: Iterable[HierarchyNode]) -> Dict[Hashable, List[HierarchyNode]]:
    index: Dict[Hashable, List[HierarchyNode]] = {}
    for node in nodes:
        if node.parent_id is not None:
            index.setdefault(node.parent_id, []).append(node)
    return index


def build_hierarchy(nodes: Iterable[HierarchyNode], root_id: Optional[Hashable] = None) -> List[HierarchyNode]:
    """
    Attach children to their parents and return the forest roots, or the
    single subtree rooted at `root_id`.

    Nodes whose parent is not in the set are treated as roots so that every
    node of an acyclic input appears exactly once in the result. Nodes caught
    in a parent cycle have no root above them; they are left out and logged.
    """
    by_id = {}
    for node in nodes:
        by_id[node.id] = HierarchyNode(id=node.id, parent_id=node.parent_id, level=node.level, data=dict(node.data))

    roots = []
    for node in by_id.values():
        parent = by_id.get(node.parent_id) if node.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)

    reached = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node.id in reached:
            continue
        reached.add(node.id)
        stack.extend(node.children)
    if len(reached) < len(by_id):
        stranded = sorted(set(by_id) - reached, key=str)
        logger.warning(f"Cycle in hierarchy: {len(stranded)} node(s) not reachable from any root: {stranded}")

    if root_id is not None:
        if root_id not in by_id:
            raise NodeNotFoundError(f"Node {root_id} not found", {"id": root_id})
        return [by_id[root_id]]
    return roots


def descendants_of(nodes: Iterable[HierarchyNode], node_id: Hashable) -> List[HierarchyNode]:
    """Breadth-first list of every node below `node_id`, each at most once."""
    nodes = list(nodes)
    if node_id not in _index(nodes):
        raise NodeNotFoundError(f"Node {node_id} not found", {"id": node_id})
    index = children_index(nodes)

    result = []
    visited = {node_id}
    queue = deque([node_id])
    while queue:
        current = queue.popleft()
        for child in index.get(current, []):
            if child.id in visited:
                logger.warning(f"Cycle detected below node {node_id} at {child.id}; skipping")
                continue
            visited.add(child.id)
            result.append(child)
            queue.append(child.id)
    return result


def ancestors_of(nodes: Iterable[HierarchyNode], node_id: Hashable) -> List[HierarchyNode]:
    """Parent chain from the immediate parent up to the root."""
    by_id = _index(nodes)
    if node_id not in by_id:
        raise NodeNotFoundError(f"Node {node_id} not found", {"id": node_id})

    chain = []
    visited = {node_id}
    current = by_id[node_id]
    while current.parent_id is not None and current.parent_id in by_id:
        if current.parent_id in visited:
            raise HierarchyCycleError(f"Cycle detected in ancestors of node {node_id}", {"id": node_id})
        visited.add(current.parent_id)
        current = by_id[current.parent_id]
        chain.append(current)
    return chain


def derive_level(parent: Optional[HierarchyNode]) -> int:
    return 0 if parent is None else parent.level + 1


def assert_can_reparent(nodes: Iterable[HierarchyNode], node_id: Hashable, new_parent_id: Optional[Hashable]) -> None:
    """Refuse parent assignments that would create a cycle."""
    if new_parent_id is None:
        return
    if new_parent_id == node_id:
        raise HierarchyCycleError(f"Node {node_id} cannot be its own parent", {"id": node_id})
    nodes = list(nodes)
    if new_parent_id not in _index(nodes):
        raise NodeNotFoundError(f"Parent {new_parent_id} not found", {"id": new_parent_id})
    if node_id not in _index(nodes):
        return
    below = {n.id for n in descendants_of(nodes, node_id)}
    if new_parent_id in below:
        raise HierarchyCycleError(
            f"Node {new_parent_id} is a descendant of {node_id}; re-parenting would create a cycle",
            {"id": node_id, "parent_id": new_parent_id},
        )

