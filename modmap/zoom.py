"""Zoom/focus state machine for the packed bubble chart.

The state is an immutable :class:`FocusState`; :func:`activate` is the only
transition. Animation is the host's business: it measures elapsed time,
turns it into progress ``t`` in ``[0, 1]`` with :meth:`Transition.progress`,
and asks :func:`current_viewport`, :func:`project` and :func:`label_states`
what to draw for that ``t``. Those readers never change the state.

Screen coordinates are centred: ``(0, 0)`` is the middle of the drawing
surface and a node framed by the viewport spans the full surface width.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple

from modmap.config import ChartConfig
from modmap.pack import PackedLayout

RHO = math.sqrt(2)
_EPSILON2 = 1e-12


class Viewport(NamedTuple):
    cx: float
    cy: float
    diameter: float


class ScreenCircle(NamedTuple):
    id: int
    x: float
    y: float
    r: float


class LabelState(NamedTuple):
    opacity: float
    display: bool


# ---------------- Interpolation ----------------
def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


def interpolate_linear(start: Viewport, end: Viewport) -> Callable[[float], Viewport]:
    def at(t: float) -> Viewport:
        return Viewport(
            start[0] + (end[0] - start[0]) * t,
            start[1] + (end[1] - start[1]) * t,
            start[2] + (end[2] - start[2]) * t,
        )

    return at


def interpolate_zoom(start: Viewport, end: Viewport) -> Callable[[float], Viewport]:
    """Smooth pan-and-zoom path between two views (van Wijk and Nuij).

    The returned callable carries a ``duration`` attribute: the path length
    expressed in milliseconds at the conventional speed.
    """
    ux0, uy0, w0 = start
    ux1, uy1, w1 = end
    dx = ux1 - ux0
    dy = uy1 - uy0
    d2 = dx * dx + dy * dy
    rho2 = RHO * RHO
    rho4 = rho2 * rho2

    if d2 < _EPSILON2:
        s = math.log(w1 / w0) / RHO

        def at(t: float) -> Viewport:
            return Viewport(ux0 + t * dx, uy0 + t * dy, w0 * math.exp(RHO * t * s))

    else:
        d1 = math.sqrt(d2)
        b0 = (w1 * w1 - w0 * w0 + rho4 * d2) / (2 * w0 * rho2 * d1)
        b1 = (w1 * w1 - w0 * w0 - rho4 * d2) / (2 * w1 * rho2 * d1)
        r0 = math.log(math.sqrt(b0 * b0 + 1) - b0)
        r1 = math.log(math.sqrt(b1 * b1 + 1) - b1)
        s = (r1 - r0) / RHO
        coshr0 = math.cosh(r0)
        sinhr0 = math.sinh(r0)

        def at(t: float) -> Viewport:
            si = t * s
            u = w0 / (rho2 * d1) * (coshr0 * math.tanh(RHO * si + r0) - sinhr0)
            return Viewport(ux0 + u * dx, uy0 + u * dy, w0 * coshr0 / math.cosh(RHO * si + r0))

    at.duration = s * 1000 * RHO / math.sqrt(2)  # type: ignore[attr-defined]
    return at


INTERPOLATORS: Dict[str, Callable[[Viewport, Viewport], Callable[[float], Viewport]]] = {
    "zoom": interpolate_zoom,
    "linear": interpolate_linear,
}


def interpolate(start: Viewport, end: Viewport, t: float, method: str = "zoom") -> Viewport:
    t = min(1.0, max(0.0, t))
    if t == 0:
        return Viewport(*start)
    if t == 1:
        return Viewport(*end)
    return INTERPOLATORS[method](Viewport(*start), Viewport(*end))(t)


# ---------------- State ----------------
@dataclass(frozen=True)
class Transition:
    source: int
    target: int
    start: Viewport
    end: Viewport
    duration: float
    method: str = "zoom"
    labels_from: Tuple[Tuple[int, float], ...] = ()

    def progress(self, elapsed: float) -> float:
        if self.duration <= 0:
            return 1.0
        return min(1.0, max(0.0, elapsed / self.duration))

    def viewport_at(self, t: float) -> Viewport:
        return interpolate(self.start, self.end, ease_cubic_in_out(min(1.0, max(0.0, t))), self.method)


@dataclass(frozen=True)
class FocusState:
    focused: int
    viewport: Viewport
    transition: Optional[Transition] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        tr = self.transition
        return {
            "focused": self.focused,
            "viewport": list(self.viewport),
            "transition": None
            if tr is None
            else {
                "source": tr.source,
                "target": tr.target,
                "start": list(tr.start),
                "end": list(tr.end),
                "duration": tr.duration,
                "method": tr.method,
                "labels_from": [[i, o] for i, o in tr.labels_from],
            },
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FocusState":
        tr = raw.get("transition")
        transition = None
        if tr:
            method = str(tr.get("method", "zoom"))
            if method not in INTERPOLATORS:
                raise ValueError(f"Unknown interpolation method {method!r}")
            transition = Transition(
                source=int(tr["source"]),
                target=int(tr["target"]),
                start=Viewport(*[float(v) for v in tr["start"]]),
                end=Viewport(*[float(v) for v in tr["end"]]),
                duration=float(tr["duration"]),
                method=method,
                labels_from=tuple((int(i), float(o)) for i, o in tr.get("labels_from", [])),
            )
        return cls(
            focused=int(raw["focused"]),
            viewport=Viewport(*[float(v) for v in raw["viewport"]]),
            transition=transition,
        )


def initial_state(layout: PackedLayout) -> FocusState:
    return FocusState(focused=layout.root.id, viewport=Viewport(*layout.root.view))


def _in_flight(state: FocusState, t: Optional[float]) -> bool:
    return state.transition is not None and t is not None and t < 1.0


def current_viewport(state: FocusState, t: Optional[float] = None) -> Viewport:
    """Viewport at progress ``t`` of the running transition (rest viewport otherwise)."""
    if _in_flight(state, t):
        return state.transition.viewport_at(t)  # type: ignore[union-attr]
    return state.viewport


def label_states(layout: PackedLayout, state: FocusState, t: Optional[float] = None) -> Dict[int, LabelState]:
    """Opacity and display of every node label at progress ``t``.

    At rest only the focused node's children are shown. While a transition
    runs, labels that were on screen stay displayed while they fade, and the
    new focus's children are displayed from the first frame so they can
    fade in.
    """
    if not _in_flight(state, t):
        return {
            node.id: LabelState(1.0, True) if node.parent == state.focused else LabelState(0.0, False)
            for node in layout
        }

    tr = state.transition
    eased = ease_cubic_in_out(max(0.0, t))  # type: ignore[arg-type]
    starting = dict(tr.labels_from)  # type: ignore[union-attr]
    out: Dict[int, LabelState] = {}
    for node in layout:
        entering = node.parent == tr.target  # type: ignore[union-attr]
        if node.id not in starting and not entering:
            out[node.id] = LabelState(0.0, False)
            continue
        begin = starting.get(node.id, 0.0)
        finish = 1.0 if entering else 0.0
        out[node.id] = LabelState(begin + (finish - begin) * eased, True)
    return out


def activate(
    layout: PackedLayout,
    state: FocusState,
    node_id: int,
    *,
    t: Optional[float] = None,
    slow: bool = False,
    config: Optional[ChartConfig] = None,
) -> FocusState:
    """Focus ``node_id``.

    ``t`` is the progress of the transition currently on screen (``None``
    when it has finished). A new activation starts from the viewport and
    label opacities visible at that instant. Activating the focused node
    returns ``state`` unchanged. ``slow`` selects the long duration.

    Raises:
        KeyError: ``node_id`` is not in ``layout``.
    """
    target = layout.node(node_id)
    if target.id == state.focused:
        return state

    config = config or ChartConfig()
    start = current_viewport(state, t)
    labels_from = tuple(
        (nid, label.opacity) for nid, label in label_states(layout, state, t).items() if label.display
    )
    end = Viewport(*target.view)
    transition = Transition(
        source=state.focused,
        target=target.id,
        start=start,
        end=end,
        duration=config.slow_duration if slow else config.duration,
        method=config.interpolation,
        labels_from=labels_from,
    )
    return FocusState(focused=target.id, viewport=end, transition=transition)


def activate_background(
    layout: PackedLayout,
    state: FocusState,
    *,
    t: Optional[float] = None,
    slow: bool = False,
    config: Optional[ChartConfig] = None,
) -> FocusState:
    """Click on empty canvas: zoom back out to the root."""
    return activate(layout, state, layout.root.id, t=t, slow=slow, config=config)


def settle(state: FocusState) -> FocusState:
    return replace(state, transition=None) if state.transition is not None else state


# ---------------- Projection ----------------
def project(layout: PackedLayout, viewport: Viewport, width: float) -> List[ScreenCircle]:
    cx, cy, diameter = viewport
    k = width / diameter
    return [ScreenCircle(n.id, (n.x - cx) * k, (n.y - cy) * k, n.r * k) for n in layout]


def hit_test(layout: PackedLayout, viewport: Viewport, width: float, sx: float, sy: float) -> Optional[int]:
    """Deepest clickable node under screen point ``(sx, sy)``.

    Leaves do not take pointer events and the root is not drawn, so only
    non-root groups can be hit.
    """
    hit: Optional[ScreenCircle] = None
    hit_depth = -1
    for circle in project(layout, viewport, width):
        node = layout.nodes[circle.id]
        if node.parent is None or node.is_leaf:
            continue
        if (sx - circle.x) ** 2 + (sy - circle.y) ** 2 <= circle.r ** 2 and node.depth > hit_depth:
            hit = circle
            hit_depth = node.depth
    return None if hit is None else hit.id


def activate_at(
    layout: PackedLayout,
    state: FocusState,
    sx: float,
    sy: float,
    *,
    t: Optional[float] = None,
    slow: bool = False,
    config: Optional[ChartConfig] = None,
) -> FocusState:
    """Pointer click at screen ``(sx, sy)``.

    A click on the focused group is not consumed by the group and reaches
    the background, which refocuses the root.
    """
    config = config or ChartConfig()
    node_id = hit_test(layout, current_viewport(state, t), config.width, sx, sy)
    if node_id is None or node_id == state.focused:
        return activate_background(layout, state, t=t, slow=slow, config=config)
    return activate(layout, state, node_id, t=t, slow=slow, config=config)
