"""Scope identifiers for components with scoped styles."""

import base64
import hashlib
from typing import Dict, Optional

from pywebc.compiler.nodes import Node
from pywebc.compiler.query import AstQuery, Attrs
from pywebc.exceptions import ScopeCollisionError

SCOPE_PREFIX = "w"
DIGEST_LENGTH = 8


def get_digest(content: str, prefix: str = SCOPE_PREFIX) -> str:
    digest = hashlib.sha256(content.encode("utf-8")).digest()
    encoded = base64.urlsafe_b64encode(digest).decode("ascii").lower()
    return prefix + encoded[:DIGEST_LENGTH]


class ScopeOverrides:
    """Explicit `webc:scoped="name"` claims made during one compiler run."""

    def __init__(self) -> None:
        self._claims: Dict[str, str] = {}

    def claim(self, scope_id: str, file_path: str) -> str:
        owner = self._claims.get(scope_id)
        if owner is not None and owner != file_path:
            raise ScopeCollisionError(
                f'Multiple components are using the same webc:scoped="{scope_id}" '
                f"override: {owner} and {file_path}",
                file_path,
            )
        self._claims[scope_id] = file_path
        return scope_id

    def owner_of(self, scope_id: str) -> Optional[str]:
        return self._claims.get(scope_id)


def compute_scope_id(
    query: AstQuery,
    tree: Node,
    file_path: str,
    overrides: ScopeOverrides,
) -> Optional[str]:
    """Return the scope class for a component, or None when it has no scoped styles.

    The identifier hashes the text of every top-level `<style webc:scoped>`
    (or the href of a scoped stylesheet link). An explicit override value
    wins and is claimed in `overrides`.
    """
    nodes = query.get_top_level_nodes(tree, tag_names=["style", "link"], attribute_names=[Attrs.SCOPED])
    if not nodes:
        return None

    hash_input = []
    for node in nodes:
        override = query.get_attribute_value(node, Attrs.SCOPED)
        if override:
            return overrides.claim(override, file_path)

        if query.get_tag_name(node) == "style":
            hash_input.extend(query.get_text_content(node))
        elif query.is_link_stylesheet_node("link", node):
            hash_input.append(query.get_attribute_value(node, "href") or "")

    return get_digest("".join(hash_input))
