"""Selector engines used by the record extractor.

Two fragment types are supported.  HTML fragments are BeautifulSoup tags
queried with CSS selectors (soupsieve under the hood).  JSON fragments are
decoded objects queried with dotted key paths such as ``address.city`` or
``phones.0``.  Both expose the same three calls so the extractor does not
care which kind of store block it is looking at.

Finding nothing is reported as an empty match list.  Only problems with the
query itself (bad selector syntax, a fragment of the wrong type) raise
:class:`~exceptions.CapabilityFault`.
"""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional, Protocol, runtime_checkable

import soupsieve
from bs4 import Tag

from exceptions import CapabilityFault
from utils import clean_text


@runtime_checkable
class Query(Protocol):
    """Read-only DOM query capability."""

    def select(self, fragment: Any, selector: str) -> List[Any]:
        """Return the nodes under ``fragment`` matching ``selector`` in document order."""
        ...

    def text(self, node: Any) -> str:
        ...

    def attribute(self, node: Any, name: str) -> Optional[str]:
        ...


def _require_tag(node: Any, selector: Optional[str] = None) -> Tag:
    if not isinstance(node, Tag):
        raise CapabilityFault(f"expected an HTML tag, got {type(node).__name__}", selector=selector)
    return node


# Types json.loads can produce, apart from null
_JSON_TYPES = (Mapping, list, str, int, float, bool)


def _require_json(node: Any) -> Any:
    if node is None or not isinstance(node, _JSON_TYPES):
        raise CapabilityFault(f"expected a JSON value, got {type(node).__name__}")
    return node


class HtmlQuery:
    """CSS selection over BeautifulSoup tags."""

    def select(self, fragment: Any, selector: str) -> List[Tag]:
        fragment = _require_tag(fragment, selector)
        try:
            return list(fragment.select(selector))
        except soupsieve.SelectorSyntaxError as exc:
            raise CapabilityFault(f"invalid CSS selector: {exc}", selector=selector) from exc

    def text(self, node: Tag) -> str:
        return clean_text(_require_tag(node).get_text())

    def attribute(self, node: Tag, name: str) -> Optional[str]:
        value = _require_tag(node).get(name)
        if value is None:
            return None
        # bs4 returns multi-valued attributes such as class as a list
        if isinstance(value, (list, tuple)):
            return " ".join(value)
        return str(value)


class JsonQuery:
    """Dotted key path lookup over decoded JSON objects."""

    def select(self, fragment: Any, selector: str) -> List[Any]:
        if not isinstance(fragment, Mapping):
            raise CapabilityFault(
                f"expected a JSON object, got {type(fragment).__name__}", selector=selector
            )
        segments = selector.split(".")
        if any(not seg for seg in segments):
            raise CapabilityFault("invalid key path", selector=selector)

        current: Any = fragment
        for seg in segments:
            if isinstance(current, Mapping):
                if seg not in current:
                    return []
                current = current[seg]
            elif isinstance(current, list) and seg.isdecimal():
                idx = int(seg)
                if idx >= len(current):
                    return []
                current = current[idx]
            else:
                return []
        # JSON null counts as absent
        if current is None:
            return []
        return [current]

    def text(self, node: Any) -> str:
        node = _require_json(node)
        if isinstance(node, bool):
            return "true" if node else "false"
        if isinstance(node, str):
            return clean_text(node)
        if isinstance(node, (Mapping, list)):
            return json.dumps(node, separators=(",", ":"), ensure_ascii=False)
        return str(node)

    def attribute(self, node: Any, name: str) -> Optional[str]:
        # a scalar has no keys, so the attribute is absent
        if not isinstance(_require_json(node), Mapping):
            return None
        value = node.get(name)
        if value is None:
            return None
        return self.text(value)


_HTML = HtmlQuery()
_JSON = JsonQuery()


def query_for(fragment: Any) -> Query:
    """Pick the selector engine matching the fragment's type."""
    if isinstance(fragment, Tag):
        return _HTML
    if isinstance(fragment, Mapping):
        return _JSON
    raise CapabilityFault(f"unsupported fragment type {type(fragment).__name__}")
