"""Tolerant record extraction.

``extract`` turns one store fragment into one record by applying each field
rule independently.  A field whose selector matches nothing, or whose
attribute is missing, is set to :data:`~models.NULL` and the remaining
fields are still read.  Faults in the query layer are not swallowed: they
propagate as :class:`~exceptions.CapabilityFault`.

``extract_all`` runs ``extract`` over a list of fragments.  What happens when
one fragment faults is decided by ``on_item_error``:

``abort``
    re-raise immediately, tagged with the fragment index.
``skip-and-record``
    put an :class:`~models.ItemFailure` at that position and carry on, so the
    result always has one item per input fragment.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from exceptions import CapabilityFault
from models import ATTRIBUTE, NULL, FieldRule, ItemFailure, Record, RecordSet, validate_rules
from query import Query, query_for

logger = logging.getLogger(__name__)


class OnItemError:
    ABORT = "abort"
    SKIP_AND_RECORD = "skip-and-record"
    CHOICES = (ABORT, SKIP_AND_RECORD)


def _read_field(fragment: Any, rule: FieldRule, query: Query) -> Optional[str]:
    if rule.selector:
        matches = query.select(fragment, rule.selector)
        if not matches:
            return NULL
        node = matches[0]
    else:
        node = fragment

    if rule.kind == ATTRIBUTE:
        return query.attribute(node, rule.attribute_name)
    return query.text(node)


def extract(fragment: Any, rules: Sequence[FieldRule], query: Optional[Query] = None) -> Record:
    """Build one record from ``fragment``.

    Parameters
    ----------
    fragment : bs4.Tag or dict
        The store block to read.  It is not modified.
    rules : sequence of FieldRule
        Non-empty, uniquely named.  The record keys follow this order.
    query : Query, optional
        Selector engine; chosen from the fragment type when omitted.

    Returns
    -------
    dict
        Exactly one entry per rule, ``None`` where the data is absent.

    Raises
    ------
    CapabilityFault
        The selector engine rejected a selector or the fragment.
    """
    rules = list(rules)
    validate_rules(rules)
    return _extract(fragment, rules, query or query_for(fragment))


def _extract(fragment: Any, rules: Sequence[FieldRule], query: Query) -> Record:
    record: Record = {}
    for rule in rules:
        record[rule.name] = _read_field(fragment, rule, query)
    return record


def extract_all(
    fragments: Sequence[Any],
    rules: Sequence[FieldRule],
    on_item_error: str = OnItemError.ABORT,
    query: Optional[Query] = None,
) -> RecordSet:
    """Extract a record from every fragment, preserving input order.

    The returned :class:`~models.RecordSet` has the same length as
    ``fragments`` unless a fault aborts the batch, in which case the raised
    :class:`~exceptions.CapabilityFault` carries the records extracted so far
    in ``partial``.
    """
    if on_item_error not in OnItemError.CHOICES:
        raise ValueError(
            f"on_item_error must be one of {OnItemError.CHOICES}, got {on_item_error!r}"
        )
    rules = list(rules)
    validate_rules(rules)

    result = RecordSet(columns=[rule.name for rule in rules])
    for index, fragment in enumerate(fragments):
        try:
            result.items.append(_extract(fragment, rules, query or query_for(fragment)))
        except CapabilityFault as exc:
            exc.index = index
            if on_item_error == OnItemError.ABORT:
                exc.partial = result
                raise
            logger.warning("Item %d failed: %s", index, exc)
            result.items.append(ItemFailure(index=index, error=str(exc)))

    logger.debug(
        "Extracted %d items (%d failed)", len(result), len(result.failed_indices)
    )
    return result
