"""
Persistence-side tree maintenance for divisions and positions.

`level` is derived from the parent and written here, in the same
transaction that commits the node, instead of in a model save hook.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from django.db import transaction

from core.errors import NodeNotFoundError

from .hierarchy import HierarchyNode, assert_can_reparent, build_hierarchy, derive_level, descendants_of

logger = logging.getLogger(__name__)


def load_nodes(model) -> List[HierarchyNode]:
    rows = model.objects.values_list("pk", "parent_id", "level")
    return [HierarchyNode(id=pk, parent_id=parent_id, level=level) for pk, parent_id, level in rows]


def _cascade_levels(model, root) -> int:
    """Rewrite descendant levels below `root`; returns the number of rows changed."""
    levels = {root.pk: root.level}
    changed = 0
    for node in descendants_of(load_nodes(model), root.pk):
        new_level = levels[node.parent_id] + 1
        levels[node.id] = new_level
        if node.level != new_level:
            model.objects.filter(pk=node.id).update(level=new_level)
            changed += 1
    return changed


@transaction.atomic
def save_node(instance):
    """Derive `level` from the parent, guard against cycles and persist."""
    model = type(instance)
    is_new = instance.pk is None
    old_level = None
    if not is_new:
        old_level = model.objects.filter(pk=instance.pk).values_list("level", flat=True).first()

    parent = None
    if instance.parent_id is not None:
        parent = model.objects.select_for_update().filter(pk=instance.parent_id).first()
        if parent is None:
            raise NodeNotFoundError(f"{model.__name__} {instance.parent_id} not found", {"id": instance.parent_id})
        if not is_new:
            assert_can_reparent(load_nodes(model), instance.pk, instance.parent_id)
    instance.level = derive_level(parent.as_node() if parent is not None else None)

    instance.save()

    if not is_new and old_level is not None and old_level != instance.level:
        changed = _cascade_levels(model, instance)
        logger.info(f"{model.__name__} {instance.pk} moved to level {instance.level}; {changed} descendant(s) releveled")
    return instance


def reparent(instance, parent: Optional[object]):
    instance.parent = parent
    return save_node(instance)


def hierarchy_for(queryset, root_id=None) -> List[dict]:
    nodes = [obj.as_node() for obj in queryset]
    return [root.as_dict() for root in build_hierarchy(nodes, root_id)]


def descendants_for(queryset, node_id) -> List[dict]:
    nodes = [obj.as_node() for obj in queryset]
    return [n.as_dict() for n in descendants_of(nodes, node_id)]
