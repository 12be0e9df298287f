"""Data model for declarative record extraction.

A :class:`FieldRule` says where one output column comes from: either an
attribute or the visible text of a node, located by a selector relative to
the store fragment (an empty selector means the fragment itself).  A record
is a plain ``dict`` with one entry per rule in rule order; fields that could
not be found hold :data:`NULL`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Union

from exceptions import RuleSetError

# Null marker for a field whose selector matched nothing.  pandas renders
# it as an empty cell.
NULL = None

ATTRIBUTE = "attribute"
TEXT = "text"
KINDS = (ATTRIBUTE, TEXT)

Record = Dict[str, Optional[str]]


@dataclass(frozen=True)
class FieldRule:
    """One output field: its name, how to read it and where to find it."""

    name: str
    kind: str
    selector: str = ""
    attribute_name: Optional[str] = None

    @classmethod
    def attr(cls, name: str, attribute: str, selector: str = "") -> "FieldRule":
        return cls(name=name, kind=ATTRIBUTE, selector=selector, attribute_name=attribute)

    @classmethod
    def text(cls, name: str, selector: str = "") -> "FieldRule":
        return cls(name=name, kind=TEXT, selector=selector)


@dataclass(frozen=True)
class ItemFailure:
    """Placeholder for a fragment whose extraction raised a capability fault.

    Only produced by ``extract_all`` under the ``skip-and-record`` policy.
    It is never confused with a record whose fields are all null.
    """

    index: int
    error: str


Item = Union[Record, ItemFailure]


@dataclass
class RecordSet:
    """Ordered extraction results, one item per input fragment.

    Attributes
    ----------
    items : list
        Either a record or an :class:`ItemFailure` per input position.
    columns : list of str
        Field names in rule order, used when tabulating.
    """

    items: List[Item] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def __getitem__(self, index: int) -> Item:
        return self.items[index]

    @property
    def records(self) -> List[Record]:
        """Successfully extracted records, in input order."""
        return [item for item in self.items if not isinstance(item, ItemFailure)]

    @property
    def failures(self) -> List[ItemFailure]:
        return [item for item in self.items if isinstance(item, ItemFailure)]

    @property
    def failed_indices(self) -> List[int]:
        return [item.index for item in self.failures]


def validate_rules(rules: Sequence[FieldRule]) -> None:
    """Raise :class:`RuleSetError` unless ``rules`` is a usable rule set.

    A usable set is non-empty, has unique names, uses a known kind for every
    rule and names an attribute for every attribute rule.
    """
    if not rules:
        raise RuleSetError("rule set must contain at least one field rule")
    seen = set()
    for rule in rules:
        if rule.name in seen:
            raise RuleSetError(f"duplicate field name {rule.name!r}")
        seen.add(rule.name)
        if rule.kind not in KINDS:
            raise RuleSetError(f"field {rule.name!r} has unknown kind {rule.kind!r}")
        if rule.kind == ATTRIBUTE and not rule.attribute_name:
            raise RuleSetError(f"attribute field {rule.name!r} needs an attribute name")
