"""Order class nodes so every base class precedes the classes extending it."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .models import ASTNode

logger = logging.getLogger(__name__)

# Named groups are only inlined into other classes, never emitted on their own.
GROUP_PREFIX = "group_"

_WHITE, _GREY, _BLACK = 0, 1, 2


class InheritanceCycleError(ValueError):
    """Raised when class inheritance forms a cycle."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__("inheritance cycle: " + " -> ".join(self.cycle))


def base_class_name(node: ASTNode) -> Optional[str]:
    extends = node.attr.get("extends")
    return extends if isinstance(extends, str) and extends else None


def _lookup(by_name: Dict[str, ASTNode], reference: str) -> Optional[ASTNode]:
    # ``extends`` may carry a namespace prefix (``tns.Base``) for a local class.
    return by_name.get(reference) or by_name.get(reference.rsplit(".", 1)[-1])


def sort_classes_by_hierarchy(classes: Sequence[ASTNode]) -> List[ASTNode]:
    """Return ``classes`` in base-before-derived order.

    A depth first walk visits a class's base (when it is among ``classes``)
    before the class itself. Input order is kept wherever inheritance does
    not force otherwise. A name seen twice is emitted once; names starting
    with :data:`GROUP_PREFIX` are dropped.

    Raises:
        InheritanceCycleError: If following ``extends`` leads back to a class
            currently being visited.

    Example:
        >>> base = ASTNode("Class", name="Base")
        >>> child = ASTNode("Class", name="Child").prop("extends", "Base")
        >>> [n.name for n in sort_classes_by_hierarchy([child, base])]
        ['Base', 'Child']
    """
    by_name: Dict[str, ASTNode] = {}
    for node in classes:
        by_name.setdefault(node.name, node)

    state: Dict[str, int] = {}
    ordered: List[ASTNode] = []

    def visit(node: ASTNode, path: List[str]) -> None:
        color = state.get(node.name, _WHITE)
        if color == _BLACK:
            return
        if color == _GREY:
            start = path.index(node.name)
            raise InheritanceCycleError(path[start:] + [node.name])
        state[node.name] = _GREY
        base = base_class_name(node)
        if base:
            parent = _lookup(by_name, base)
            if parent is not None:
                visit(parent, path + [node.name])
            else:
                logger.debug("base %s of %s is not a local class", base, node.name)
        state[node.name] = _BLACK
        ordered.append(node)

    for node in classes:
        if node is by_name.get(node.name):
            visit(node, [])

    return [node for node in ordered if not node.name.startswith(GROUP_PREFIX)]
