"""Circle-packing layout for the module hierarchy.

This follows the front-chain sibling packing and Welzl-style enclosing
circle used by d3-hierarchy's ``pack`` so that, for the same hierarchy and
size, the geometry matches what the browser version of the chart draws.
The only deliberate difference is the origin: the root circle is centred on
``(0, 0)`` instead of ``(width / 2, height / 2)``.

Nodes are stored in one owning list (breadth-first order, root at index 0);
``parent`` and ``children`` are indices into that list.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from modmap.errors import LayoutPreconditionError

DEFAULT_PADDING = 3.0

_LCG_A = 1664525
_LCG_C = 1013904223
_LCG_M = 4294967296


def lcg() -> Callable[[], float]:
    """Deterministic uniform [0, 1) source, seeded identically on every call."""
    state = 1

    def random() -> float:
        nonlocal state
        state = (_LCG_A * state + _LCG_C) % _LCG_M
        return state / _LCG_M

    return random


class Circle:
    __slots__ = ("x", "y", "r")

    def __init__(self, x: float = 0.0, y: float = 0.0, r: float = 0.0) -> None:
        self.x = x
        self.y = y
        self.r = r

    def __repr__(self) -> str:
        return f"Circle(x={self.x!r}, y={self.y!r}, r={self.r!r})"


# ---------------- Enclosing circle ----------------
def _shuffle(items: List[Circle], random: Callable[[], float]) -> List[Circle]:
    m = len(items)
    while m:
        i = int(random() * m)
        m -= 1
        items[m], items[i] = items[i], items[m]
    return items


def _encloses_not(a: Circle, b: Circle) -> bool:
    dr = a.r - b.r
    dx = b.x - a.x
    dy = b.y - a.y
    return dr < 0 or dr * dr < dx * dx + dy * dy


def _encloses_weak(a: Circle, b: Circle) -> bool:
    dr = a.r - b.r + max(a.r, b.r, 1) * 1e-9
    dx = b.x - a.x
    dy = b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _encloses_weak_all(a: Circle, basis: Sequence[Circle]) -> bool:
    return all(_encloses_weak(a, b) for b in basis)


def _enclose_basis1(a: Circle) -> Circle:
    return Circle(a.x, a.y, a.r)


def _enclose_basis2(a: Circle, b: Circle) -> Circle:
    x21 = b.x - a.x
    y21 = b.y - a.y
    r21 = b.r - a.r
    l = math.sqrt(x21 * x21 + y21 * y21)
    if l == 0:
        return _enclose_basis1(a if a.r >= b.r else b)
    return Circle(
        (a.x + b.x + x21 / l * r21) / 2,
        (a.y + b.y + y21 / l * r21) / 2,
        (l + a.r + b.r) / 2,
    )


def _enclose_basis3(a: Circle, b: Circle, c: Circle) -> Circle:
    x1, y1, r1 = a.x, a.y, a.r
    x2, y2, r2 = b.x, b.y, b.r
    x3, y3, r3 = c.x, c.y, c.r
    a2 = x1 - x2
    a3 = x1 - x3
    b2 = y1 - y2
    b3 = y1 - y3
    c2 = r2 - r1
    c3 = r3 - r1
    d1 = x1 * x1 + y1 * y1 - r1 * r1
    d2 = d1 - x2 * x2 - y2 * y2 + r2 * r2
    d3 = d1 - x3 * x3 - y3 * y3 + r3 * r3
    ab = a3 * b2 - a2 * b3
    xa = (b2 * d3 - b3 * d2) / (ab * 2) - x1
    xb = (b3 * c2 - b2 * c3) / ab
    ya = (a3 * d2 - a2 * d3) / (ab * 2) - y1
    yb = (a2 * c3 - a3 * c2) / ab
    qa = xb * xb + yb * yb - 1
    qb = 2 * (r1 + xa * xb + ya * yb)
    qc = xa * xa + ya * ya - r1 * r1
    if abs(qa) > 1e-6:
        r = -(qb + math.sqrt(max(0.0, qb * qb - 4 * qa * qc))) / (2 * qa)
    else:
        r = -(qc / qb)
    return Circle(x1 + xa + xb * r, y1 + ya + yb * r, r)


def _enclose_basis(basis: Sequence[Circle]) -> Circle:
    if len(basis) == 1:
        return _enclose_basis1(basis[0])
    if len(basis) == 2:
        return _enclose_basis2(basis[0], basis[1])
    return _enclose_basis3(basis[0], basis[1], basis[2])


def _extend_basis(basis: List[Circle], p: Circle) -> List[Circle]:
    if _encloses_weak_all(p, basis):
        return [p]

    for i in range(len(basis)):
        if _encloses_not(p, basis[i]) and _encloses_weak_all(_enclose_basis2(basis[i], p), basis):
            return [basis[i], p]

    for i in range(len(basis) - 1):
        for j in range(i + 1, len(basis)):
            if (
                _encloses_not(_enclose_basis2(basis[i], basis[j]), p)
                and _encloses_not(_enclose_basis2(basis[i], p), basis[j])
                and _encloses_not(_enclose_basis2(basis[j], p), basis[i])
                and _encloses_weak_all(_enclose_basis3(basis[i], basis[j], p), basis)
            ):
                return [basis[i], basis[j], p]

    raise LayoutPreconditionError("Could not extend enclosing basis")


def pack_enclose(circles: Sequence[Circle], random: Optional[Callable[[], float]] = None) -> Optional[Circle]:
    """Smallest circle enclosing every circle in ``circles``."""
    random = random or lcg()
    items = _shuffle(list(circles), random)
    basis: List[Circle] = []
    e: Optional[Circle] = None
    i = 0
    while i < len(items):
        p = items[i]
        if e is not None and _encloses_weak(e, p):
            i += 1
        else:
            basis = _extend_basis(basis, p)
            e = _enclose_basis(basis)
            i = 0
    return e


# ---------------- Sibling packing ----------------
class _Front:
    __slots__ = ("circle", "next", "previous")

    def __init__(self, circle: Circle) -> None:
        self.circle = circle
        self.next: Optional[_Front] = None
        self.previous: Optional[_Front] = None


def _place(b: Circle, a: Circle, c: Circle) -> None:
    dx = b.x - a.x
    dy = b.y - a.y
    d2 = dx * dx + dy * dy
    if d2:
        a2 = (a.r + c.r) ** 2
        b2 = (b.r + c.r) ** 2
        if a2 > b2:
            x = (d2 + b2 - a2) / (2 * d2)
            y = math.sqrt(max(0.0, b2 / d2 - x * x))
            c.x = b.x - x * dx - y * dy
            c.y = b.y - x * dy + y * dx
        else:
            x = (d2 + a2 - b2) / (2 * d2)
            y = math.sqrt(max(0.0, a2 / d2 - x * x))
            c.x = a.x + x * dx - y * dy
            c.y = a.y + x * dy + y * dx
    else:
        c.x = a.x + c.r
        c.y = a.y


def _intersects(a: Circle, b: Circle) -> bool:
    dr = a.r + b.r - 1e-6
    dx = b.x - a.x
    dy = b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _score(node: _Front) -> float:
    a = node.circle
    b = node.next.circle
    ab = a.r + b.r
    dx = (a.x * b.r + b.x * a.r) / ab
    dy = (a.y * b.r + b.y * a.r) / ab
    return dx * dx + dy * dy


def pack_siblings(circles: Sequence[Circle], random: Optional[Callable[[], float]] = None) -> float:
    """Position ``circles`` (radii set, in order) tightly around the origin.

    Mutates each circle's ``x``/``y`` and returns the enclosing radius.
    """
    random = random or lcg()
    n = len(circles)
    if not n:
        return 0.0

    first = circles[0]
    first.x = 0.0
    first.y = 0.0
    if n < 2:
        return first.r

    second = circles[1]
    first.x = -second.r
    second.x = first.r
    second.y = 0.0
    if n < 3:
        return first.r + second.r

    _place(second, first, circles[2])

    a, b, c = _Front(first), _Front(second), _Front(circles[2])
    a.next = c.previous = b
    b.next = a.previous = c
    c.next = b.previous = a

    i = 3
    while i < n:
        _place(a.circle, b.circle, circles[i])
        c = _Front(circles[i])

        # Find the closest intersecting circle on the front chain, if any.
        j, k = b.next, a.previous
        sj, sk = b.circle.r, a.circle.r
        collided = False
        while True:
            if sj <= sk:
                if _intersects(j.circle, c.circle):
                    b = j
                    a.next = b
                    b.previous = a
                    collided = True
                    break
                sj += j.circle.r
                j = j.next
            else:
                if _intersects(k.circle, c.circle):
                    a = k
                    a.next = b
                    b.previous = a
                    collided = True
                    break
                sk += k.circle.r
                k = k.previous
            if j is k.next:
                break
        if collided:
            continue

        c.previous = a
        c.next = b
        a.next = c
        b.previous = c
        b = c

        # Restart from the pair closest to the centroid.
        aa = _score(a)
        c = c.next
        while c is not b:
            ca = _score(c)
            if ca < aa:
                a = c
                aa = ca
            c = c.next
        b = a.next
        i += 1

    chain = [b.circle]
    c = b.next
    while c is not b:
        chain.append(c.circle)
        c = c.next
    e = pack_enclose(chain, random)

    for circle in circles:
        circle.x -= e.x
        circle.y -= e.y
    return e.r


# ---------------- Hierarchy layout ----------------
@dataclass(frozen=True)
class PackedNode:
    id: int
    name: str
    depth: int
    value: float
    x: float
    y: float
    r: float
    parent: Optional[int]
    children: Tuple[int, ...] = ()
    data: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def view(self) -> Tuple[float, float, float]:
        """The ``(cx, cy, diameter)`` viewport that frames this node."""
        return (self.x, self.y, self.r * 2)


@dataclass(frozen=True)
class PackedLayout:
    nodes: Tuple[PackedNode, ...]
    width: float
    height: float
    padding: float = DEFAULT_PADDING

    @property
    def root(self) -> PackedNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[PackedNode]:
        return iter(self.nodes)

    def node(self, node_id: int) -> PackedNode:
        if not 0 <= node_id < len(self.nodes):
            raise KeyError(node_id)
        return self.nodes[node_id]

    def parent_of(self, node_id: int) -> Optional[PackedNode]:
        parent = self.node(node_id).parent
        return None if parent is None else self.nodes[parent]

    def children_of(self, node_id: int) -> List[PackedNode]:
        return [self.nodes[c] for c in self.node(node_id).children]

    def ancestors(self, node_id: int) -> List[PackedNode]:
        """``node_id`` followed by its ancestors up to the root."""
        out = [self.node(node_id)]
        while out[-1].parent is not None:
            out.append(self.nodes[out[-1].parent])
        return out

    def descendants(self, node_id: int = 0) -> List[PackedNode]:
        out: List[PackedNode] = []
        stack = [node_id]
        while stack:
            node = self.node(stack.pop())
            out.append(node)
            stack.extend(reversed(node.children))
        return out

    def leaves(self) -> List[PackedNode]:
        return [n for n in self.nodes if n.is_leaf]

    def find(self, name: str) -> Optional[PackedNode]:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def layout_frame(self) -> pd.DataFrame:
        rows = [
            {
                "id": n.id,
                "name": n.name,
                "depth": n.depth,
                "value": n.value,
                "x": n.x,
                "y": n.y,
                "r": n.r,
                "parent": n.parent,
                "is_leaf": n.is_leaf,
            }
            for n in self.nodes
        ]
        return pd.DataFrame(rows, columns=["id", "name", "depth", "value", "x", "y", "r", "parent", "is_leaf"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "padding": self.padding,
            "nodes": [
                {
                    "id": n.id,
                    "name": n.name,
                    "depth": n.depth,
                    "value": n.value,
                    "x": n.x,
                    "y": n.y,
                    "r": n.r,
                    "parent": n.parent,
                    "children": list(n.children),
                }
                for n in self.nodes
            ],
        }


def _explicit_value(data: Mapping[str, Any]) -> Optional[float]:
    if data.get("value") is None:
        return None
    try:
        value = float(data["value"])
    except (TypeError, ValueError):
        raise LayoutPreconditionError(f"Node {data.get('name')!r} has a non-numeric value") from None
    if not value > 0 or math.isinf(value):
        raise LayoutPreconditionError(f"Node {data.get('name')!r} must have a positive value, got {value!r}")
    return value


def _flatten(root: Mapping[str, Any]) -> Tuple[List[Mapping[str, Any]], List[List[int]]]:
    """Pre-order list of node dicts plus child index lists; rejects cycles and shared nodes."""
    datas: List[Mapping[str, Any]] = []
    kids: List[List[int]] = []
    seen = set()
    stack: List[Tuple[Mapping[str, Any], Optional[int]]] = [(root, None)]
    while stack:
        data, parent = stack.pop()
        if id(data) in seen:
            raise LayoutPreconditionError(f"Node {data.get('name')!r} is reachable twice (cycle or shared node)")
        seen.add(id(data))
        idx = len(datas)
        datas.append(data)
        kids.append([])
        if parent is not None:
            kids[parent].append(idx)
        for child in reversed(list(data.get("children") or [])):
            stack.append((child, idx))
    return datas, kids


def pack(root: Mapping[str, Any], width: float, height: float, padding: float = DEFAULT_PADDING) -> PackedLayout:
    """Lay ``root`` out as nested circles within a ``width`` x ``height`` box.

    Leaves weigh 1 unless they carry a ``value``; a group weighs the sum of
    its children unless it carries a ``value``. Siblings are packed largest
    first. ``padding`` separates neighbours, and a child from its parent's
    edge, in layout units before the final rescale to the root radius, so
    the gap in the returned geometry is close to but not exactly
    ``padding``. The root is centred on the origin with diameter
    ``min(width, height)``.

    Raises:
        LayoutPreconditionError: bad size, non-positive weight, or a node
            reachable twice.
    """
    try:
        width = float(width)
        height = float(height)
    except (TypeError, ValueError):
        raise LayoutPreconditionError("width and height must be numbers") from None
    if not (width > 0 and height > 0) or math.isinf(width) or math.isinf(height):
        raise LayoutPreconditionError(f"Layout size must be positive, got {width!r} x {height!r}")

    datas, kids = _flatten(root)

    values = [0.0] * len(datas)
    for idx in reversed(range(len(datas))):
        explicit = _explicit_value(datas[idx])
        if kids[idx]:
            values[idx] = explicit if explicit is not None else sum(values[c] for c in kids[idx])
        else:
            values[idx] = explicit if explicit is not None else 1.0
    for idx in range(len(datas)):
        kids[idx].sort(key=lambda c: values[c], reverse=True)

    # Breadth-first renumbering: ids follow the render order, root first.
    order: List[int] = [0]
    for idx in order:
        order.extend(kids[idx])
    new_id = {old: new for new, old in enumerate(order)}
    children = [[new_id[c] for c in kids[old]] for old in order]
    parents: List[Optional[int]] = [None] * len(order)
    depths = [0] * len(order)
    for nid, child_ids in enumerate(children):
        for c in child_ids:
            parents[c] = nid
            depths[c] = depths[nid] + 1
    weights = [values[old] for old in order]

    circles = [Circle() for _ in order]
    random = lcg()
    post_order = _post_order(children)

    def radius_leaves() -> None:
        for nid, child_ids in enumerate(children):
            if not child_ids:
                circles[nid].r = math.sqrt(weights[nid])

    def pack_children(pad: float) -> None:
        for nid in post_order:
            child_ids = children[nid]
            if not child_ids:
                continue
            members = [circles[c] for c in child_ids]
            if pad:
                for circle in members:
                    circle.r += pad
            e = pack_siblings(members, random)
            if pad:
                for circle in members:
                    circle.r -= pad
            circles[nid].r = e + pad

    def translate(k: float) -> None:
        for nid in range(len(circles)):
            circle = circles[nid]
            circle.r *= k
            parent = parents[nid]
            if parent is not None:
                circle.x = circles[parent].x + k * circle.x
                circle.y = circles[parent].y + k * circle.y

    side = min(width, height)

    radius_leaves()
    pack_children(0.0)
    translate(1.0)

    radius_leaves()
    pack_children(padding * circles[0].r / side)
    translate(side / (2 * circles[0].r))

    nodes = tuple(
        PackedNode(
            id=nid,
            name=str(datas[old].get("name", "")),
            depth=depths[nid],
            value=weights[nid],
            x=circles[nid].x,
            y=circles[nid].y,
            r=circles[nid].r,
            parent=parents[nid],
            children=tuple(children[nid]),
            data=datas[old],
        )
        for nid, old in enumerate(order)
    )
    return PackedLayout(nodes=nodes, width=width, height=height, padding=float(padding))


def _post_order(children: List[List[int]]) -> List[int]:
    stack = [0]
    visited: List[int] = []
    while stack:
        nid = stack.pop()
        visited.append(nid)
        stack.extend(children[nid])
    visited.reverse()
    return visited
