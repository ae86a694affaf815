"""
Annotator State Machine Module.

The manual-correction workflow modelled as a pure reducer: the next state
is computed from (state, event) and nothing else, so the minimum-size and
single-pending-zone rules hold independently of any rendering code.

Phases:
    idle -> drawing -> zone-pending -> (committed | discarded) -> idle

Events:
    SelectField   start drawing a zone for a field (discards a pending zone)
    PointerDown   anchor a drag gesture
    PointerMove   extend the candidate box
    PointerUp     end the gesture; tiny boxes are rejected
    Commit        store the pending zone as a hand-drawn zone
    Discard       drop the pending zone or the current drawing
    RemoveZone    delete a committed zone (any phase)
    SetValue      edit a field's value (any phase)

Events that do not apply to the current phase leave the state unchanged.
"""

from dataclasses import dataclass, field as dataclass_field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from config import get_config
from src.geometry import BoundingBox
from src.schema import FieldName, parse_field
from src.templates.models import DetectedZone, manual_label
from src.utils.logger import get_logger

logger = get_logger(__name__)


class AnnotatorPhase(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    ZONE_PENDING = "zone-pending"


# =============================================================================
# EVENTS
# =============================================================================

@dataclass(frozen=True)
class SelectField:
    field: FieldName


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float
    page: Optional[int] = None


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(frozen=True)
class Commit:
    pass


@dataclass(frozen=True)
class Discard:
    pass


@dataclass(frozen=True)
class RemoveZone:
    field: FieldName


@dataclass(frozen=True)
class SetValue:
    field: FieldName
    value: Optional[str]


AnnotatorEvent = Union[
    SelectField, PointerDown, PointerMove, PointerUp,
    Commit, Discard, RemoveZone, SetValue,
]


# =============================================================================
# STATE
# =============================================================================

@dataclass(frozen=True)
class AnnotatorState:
    """
    Immutable annotator state for one open document.

    Attributes:
        phase: Current phase
        field: Field being drawn (DRAWING / ZONE_PENDING)
        anchor: Drag start point, once the pointer went down
        page: Page of the current gesture
        candidate: Candidate box (DRAWING with anchor / ZONE_PENDING)
        zones: Committed zones of the draft
        values: Field values of the draft
        last_outcome: What the last gesture ended in, for UI feedback
    """
    phase: AnnotatorPhase = AnnotatorPhase.IDLE
    field: Optional[FieldName] = None
    anchor: Optional[Tuple[float, float]] = None
    page: Optional[int] = None
    candidate: Optional[BoundingBox] = None
    zones: Dict[FieldName, DetectedZone] = dataclass_field(default_factory=dict)
    values: Dict[FieldName, Optional[str]] = dataclass_field(default_factory=dict)
    last_outcome: Optional[str] = None

    @property
    def pending_field(self) -> Optional[FieldName]:
        return self.field if self.phase is not AnnotatorPhase.IDLE else None

    def snapshot(self) -> Dict[str, Any]:
        """Rendering snapshot: {state, pending_field, candidate_box, committed_zones}."""
        return {
            'state': self.phase.value,
            'pending_field': self.pending_field.value if self.pending_field else None,
            'candidate_box': self.candidate.to_dict() if self.candidate else None,
            'committed_zones': {
                name.value: zone.to_dict() for name, zone in self.zones.items()
            },
            'last_outcome': self.last_outcome,
        }


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def _idle(state: AnnotatorState, outcome: Optional[str]) -> AnnotatorState:
    return replace(
        state,
        phase=AnnotatorPhase.IDLE,
        field=None,
        anchor=None,
        page=None,
        candidate=None,
        last_outcome=outcome,
    )


def accepts(state: AnnotatorState, event: AnnotatorEvent) -> bool:
    """Whether `event` applies to the current phase."""
    if isinstance(event, (SelectField, RemoveZone, SetValue)):
        return True
    if isinstance(event, PointerDown):
        return state.phase is AnnotatorPhase.DRAWING and state.anchor is None
    if isinstance(event, (PointerMove, PointerUp)):
        return state.phase is AnnotatorPhase.DRAWING and state.anchor is not None
    if isinstance(event, Commit):
        return state.phase is AnnotatorPhase.ZONE_PENDING
    if isinstance(event, Discard):
        return state.phase is not AnnotatorPhase.IDLE
    return False


def reduce(
    state: AnnotatorState,
    event: AnnotatorEvent,
    min_size: Optional[float] = None
) -> AnnotatorState:
    """
    Compute the next annotator state.

    Args:
        state: Current state.
        event: Event to apply.
        min_size: Minimum zone width and height as page fractions;
                  defaults to annotator.min_zone_size (0.01).

    Returns:
        The next state (the same state when the event does not apply).
    """
    if not accepts(state, event):
        logger.debug(f"Ignoring {type(event).__name__} in phase {state.phase.value}")
        return state

    if min_size is None:
        min_size = get_config("annotator.min_zone_size", 0.01)

    if isinstance(event, SelectField):
        outcome = "discarded" if state.phase is AnnotatorPhase.ZONE_PENDING else None
        return replace(
            state,
            phase=AnnotatorPhase.DRAWING,
            field=parse_field(event.field),
            anchor=None,
            page=None,
            candidate=None,
            last_outcome=outcome,
        )

    if isinstance(event, PointerDown):
        anchor = (_clamp_unit(event.x), _clamp_unit(event.y))
        return replace(
            state,
            anchor=anchor,
            page=event.page,
            candidate=BoundingBox.from_corners(*anchor, *anchor, page=event.page),
        )

    if isinstance(event, PointerMove):
        return replace(state, candidate=_candidate(state, event.x, event.y))

    if isinstance(event, PointerUp):
        candidate = state.candidate
        if event.x is not None and event.y is not None:
            candidate = _candidate(state, event.x, event.y)

        if candidate.width < min_size or candidate.height < min_size:
            logger.debug(f"Rejected zone below minimum size: {candidate.to_dict()}")
            return _idle(state, "rejected")

        return replace(state, phase=AnnotatorPhase.ZONE_PENDING, candidate=candidate)

    if isinstance(event, Commit):
        zones = dict(state.zones)
        zones[state.field] = DetectedZone(
            zone=state.candidate,
            value=state.values.get(state.field) or None,
            confidence=1.0,
            label_found=manual_label(),
        )
        logger.debug(f"Committed zone for {state.field.value}")
        return _idle(replace(state, zones=zones), "committed")

    if isinstance(event, Discard):
        return _idle(state, "discarded")

    if isinstance(event, RemoveZone):
        field_name = parse_field(event.field)
        zones = {name: zone for name, zone in state.zones.items() if name != field_name}
        return replace(state, zones=zones)

    if isinstance(event, SetValue):
        field_name = parse_field(event.field)
        value = event.value or None
        values = dict(state.values)
        values[field_name] = value
        zones = state.zones
        if field_name in zones:
            zones = dict(zones)
            zones[field_name] = replace(zones[field_name], value=value)
        return replace(state, values=values, zones=zones)

    return state


def _candidate(state: AnnotatorState, x: float, y: float) -> BoundingBox:
    """Candidate box from the anchor to a pointer position, corners normalized."""
    ax, ay = state.anchor
    return BoundingBox.from_corners(ax, ay, _clamp_unit(x), _clamp_unit(y), page=state.page)
