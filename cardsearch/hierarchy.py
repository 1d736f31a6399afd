"""Reordering of product cards around a resolved category."""
from __future__ import annotations

import logging
from typing import AbstractSet, List, Sequence

from .interfaces import HierarchyService
from .models import ProductRecord

logger = logging.getLogger(__name__)


def partition_by_category(
    records: Sequence[ProductRecord],
    exact_category_id: int,
    sibling_ids: AbstractSet[int],
) -> List[ProductRecord]:
    """Stable three-way split: exact category, sibling branch, the rest."""
    exact: List[ProductRecord] = []
    siblings: List[ProductRecord] = []
    rest: List[ProductRecord] = []
    for record in records:
        if record.categoryId == exact_category_id:
            exact.append(record)
        elif record.categoryId in sibling_ids:
            siblings.append(record)
        else:
            rest.append(record)
    return exact + siblings + rest


async def reorder_by_hierarchy(
    records: Sequence[ProductRecord],
    exact_category_id: int,
    hierarchy: HierarchyService,
) -> List[ProductRecord]:
    node = await hierarchy.get_node(exact_category_id)
    branch = await hierarchy.get_sibling_branch(node)
    sibling_ids = {sibling.id for sibling in branch}
    logger.debug(
        "reorder_by_hierarchy exact=%s siblings=%s records=%s",
        exact_category_id,
        sorted(sibling_ids),
        len(records),
    )
    return partition_by_category(records, exact_category_id, sibling_ids)
