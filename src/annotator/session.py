"""
Annotation Session Module.

An AnnotationSession holds the draft of one open document and feeds
events through the reducer. Rendering code subscribes to snapshots; the
session itself never touches storage.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Any, List, Optional

from src.ocr_engine import OCRResult
from src.schema import FieldName, parse_field
from src.templates.models import DetectedZone, DocumentCorrection
from src.utils.exceptions import AnnotationStateError
from src.utils.logger import get_logger
from .state_machine import (
    AnnotatorEvent,
    AnnotatorPhase,
    AnnotatorState,
    Commit,
    Discard,
    PointerDown,
    PointerMove,
    PointerUp,
    RemoveZone,
    SelectField,
    SetValue,
    accepts,
    reduce,
)

logger = get_logger(__name__)

Listener = Callable[[Dict[str, Any]], None]


@dataclass
class AnnotationDraft:
    """
    Working copy of one document's field values and zones.

    Attributes:
        document_id: Document being annotated
        owner: Account the document belongs to
        state: Annotator state (holds zones and values)
        ocr_result: Upstream tokens, used to discover labels on save
        template_id: Template the values were extracted with, if any
    """
    document_id: str
    owner: str
    state: AnnotatorState = field(default_factory=AnnotatorState)
    ocr_result: Optional[OCRResult] = None
    template_id: Optional[str] = None

    @property
    def values(self) -> Dict[FieldName, Optional[str]]:
        return dict(self.state.values)

    @property
    def zones(self) -> Dict[FieldName, DetectedZone]:
        return dict(self.state.zones)

    @property
    def supplier_name(self) -> str:
        return (self.state.values.get(FieldName.SUPPLIER_NAME) or "").strip()

    @property
    def supplier_tax_id(self) -> Optional[str]:
        return (self.state.values.get(FieldName.SUPPLIER_SIRET) or "").strip() or None

    @classmethod
    def create(
        cls,
        document_id: str,
        owner: str,
        values: Optional[Dict[Any, Optional[str]]] = None,
        zones: Optional[Dict[Any, DetectedZone]] = None,
        ocr_result: Optional[OCRResult] = None,
        template_id: Optional[str] = None
    ) -> 'AnnotationDraft':
        """
        Build a draft from plain values and zones.

        Field keys may be FieldName members or their string values. A zone
        without a matching value contributes its own value.
        """
        zones = {parse_field(name): zone for name, zone in (zones or {}).items()}
        merged = {name: zone.value for name, zone in zones.items()}
        for name, value in (values or {}).items():
            merged[parse_field(name)] = value or None

        return cls(
            document_id=document_id,
            owner=owner,
            state=AnnotatorState(zones=zones, values=merged),
            ocr_result=ocr_result,
            template_id=template_id,
        )

    @classmethod
    def from_report(
        cls,
        report,
        owner: str,
        ocr_result: Optional[OCRResult] = None,
        document_id: Optional[str] = None
    ) -> 'AnnotationDraft':
        """Draft pre-filled with an extraction report's values and zones."""
        return cls.create(
            document_id=document_id or report.document_id,
            owner=owner,
            zones=report.zones,
            ocr_result=ocr_result,
            template_id=report.template_id,
        )

    @classmethod
    def from_correction(
        cls,
        correction: DocumentCorrection,
        ocr_result: Optional[OCRResult] = None
    ) -> 'AnnotationDraft':
        """Re-open a previously saved document."""
        return cls.create(
            document_id=correction.document_id,
            owner=correction.owner,
            values=correction.values,
            zones=correction.zones,
            ocr_result=ocr_result,
            template_id=correction.template_id,
        )


class AnnotationSession:
    """
    Event-driven annotation of one document.

    Attributes:
        draft: Current draft; replaced (never mutated) on every event
        strict: Raise AnnotationStateError on events that do not apply
                instead of ignoring them
        min_size: Minimum zone width/height override

    Example:
        >>> session = AnnotationSession(draft)
        >>> session.draw(FieldName.TOTAL_TTC, (0.70, 0.90), (0.90, 0.93))
        >>> session.commit()
        >>> session.snapshot()['committed_zones'].keys()
        dict_keys(['total_ttc'])
    """

    def __init__(
        self,
        draft: AnnotationDraft,
        strict: bool = False,
        min_size: Optional[float] = None
    ) -> None:
        self.draft = draft
        self.strict = strict
        self.min_size = min_size
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AnnotatorState:
        return self.draft.state

    @property
    def phase(self) -> AnnotatorPhase:
        return self.draft.state.phase

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> Dict[str, Any]:
        return self.state.snapshot()

    def dispatch(self, event: AnnotatorEvent) -> Dict[str, Any]:
        """
        Apply one event and notify listeners.

        Raises:
            AnnotationStateError: In strict mode, if the event does not
                                  apply to the current phase.
        """
        if self.strict and not accepts(self.state, event):
            raise AnnotationStateError(self.phase.value, type(event).__name__)

        new_state = reduce(self.state, event, min_size=self.min_size)
        if new_state is self.state:
            return self.snapshot()

        self.draft = replace(self.draft, state=new_state)
        snapshot = new_state.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    # Convenience wrappers

    def select_field(self, field_name) -> Dict[str, Any]:
        return self.dispatch(SelectField(parse_field(field_name)))

    def pointer_down(self, x: float, y: float, page: Optional[int] = None) -> Dict[str, Any]:
        return self.dispatch(PointerDown(x, y, page))

    def pointer_move(self, x: float, y: float) -> Dict[str, Any]:
        return self.dispatch(PointerMove(x, y))

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> Dict[str, Any]:
        return self.dispatch(PointerUp(x, y))

    def commit(self) -> Dict[str, Any]:
        return self.dispatch(Commit())

    def discard(self) -> Dict[str, Any]:
        return self.dispatch(Discard())

    def remove_zone(self, field_name) -> Dict[str, Any]:
        return self.dispatch(RemoveZone(parse_field(field_name)))

    def set_value(self, field_name, value: Optional[str]) -> Dict[str, Any]:
        return self.dispatch(SetValue(parse_field(field_name), value))

    def draw(self, field_name, start, end, page: Optional[int] = None) -> Dict[str, Any]:
        """
        Full drag gesture: select the field, press at `start`, release at `end`.

        Leaves the session in zone-pending (or idle when the box was too
        small); call commit() to keep the zone.
        """
        self.select_field(field_name)
        self.pointer_down(start[0], start[1], page)
        self.pointer_move(end[0], end[1])
        return self.pointer_up(end[0], end[1])
