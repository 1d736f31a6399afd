"""Partial facet matching for queries typed while autocompleting."""
from __future__ import annotations

import re
from typing import List, Mapping, Optional, Sequence

from .models import ProductRecord


def matches_partial_facet(
    query_tokens: Sequence[str],
    full_text: str,
    facet_counts: Mapping[str, int],
) -> Optional[str]:
    """Return the first facet that ``full_text`` plausibly continues.

    The first query token minus its last character sets the longest facet
    considered, since the last typed character may still be incomplete. A
    facet matches when ``full_text`` starts with it and has whitespace
    somewhere after it.
    """
    first_token = query_tokens[0] if query_tokens else ""
    threshold = len(first_token[:-1])
    for facet in facet_counts:
        if len(facet) > threshold:
            continue
        if re.match(rf"{re.escape(facet)}.*\s", full_text):
            return facet
    return None


def lift_partial_matches(
    records: Sequence[ProductRecord],
    query: str,
    facet_counts: Mapping[str, int],
) -> List[ProductRecord]:
    """Move cards whose name continues a partially typed facet to the front.

    Order is kept within the matched and unmatched groups.
    """
    tokens = query.lower().split()
    if not tokens or not facet_counts:
        return list(records)
    matched: List[ProductRecord] = []
    rest: List[ProductRecord] = []
    for record in records:
        if matches_partial_facet(tokens, record.name.lower(), facet_counts) is not None:
            matched.append(record)
        else:
            rest.append(record)
    return matched + rest
