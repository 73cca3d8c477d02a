import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from pdfminer.utils import apply_matrix_pt, mult_matrix

from geopdf.models.pdf_types import Layer

logger = logging.getLogger(__name__)

Matrix = Tuple[float, float, float, float, float, float]

IDENTITY_MATRIX: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
MAX_STATE_DEPTH = 256
MAX_MARKED_CONTENT_DEPTH = 256


class GraphicsStateTracker:
    """
    Tracks the current transformation matrix across q/Q nesting.

    The identity baseline is never popped: a Q without a matching q is ignored.
    `floor` raises that baseline while a form XObject runs, so a form can
    never restore state saved by the content that drew it.
    Saves beyond MAX_STATE_DEPTH are counted rather than stored so that the
    matching restores still pair up.
    """

    def __init__(self, ctm: Matrix = IDENTITY_MATRIX):
        self.ctm: Matrix = tuple(ctm)
        self.state_stack: List[Matrix] = []
        self._overflow = 0
        self.floor = 0

    @property
    def depth(self) -> int:
        return len(self.state_stack) + self._overflow

    def save_state(self) -> None:
        if len(self.state_stack) >= MAX_STATE_DEPTH:
            self._overflow += 1
            return
        self.state_stack.append(self.ctm)

    def restore_state(self) -> None:
        if self.depth <= self.floor:
            logger.debug("Ignoring Q without matching q")
        elif self._overflow:
            self._overflow -= 1
        else:
            self.ctm = self.state_stack.pop()

    def restore_to_depth(self, depth: int) -> None:
        """Unwind to a previously observed depth (used after form XObjects)."""
        self.floor = min(self.floor, depth)
        while self.depth > depth:
            self.restore_state()

    def update_ctm(self, a: float, b: float, c: float, d: float, e: float, f: float) -> None:
        self.ctm = mult_matrix((a, b, c, d, e, f), self.ctm)

    def transform_point(self, x: float, y: float) -> Tuple[float, float]:
        return apply_matrix_pt(self.ctm, (x, y))


@dataclass(frozen=True)
class MarkedContentFrame:
    layer: Optional[Layer] = None
    suppressed: bool = False
    mcid: Optional[int] = None


class MarkedContentStack:
    """
    BDC/BMC/EMC nesting with layer suppression inherited by inner frames.

    As with GraphicsStateTracker, an EMC at or below `floor` is ignored.
    """

    def __init__(self):
        self.frames: List[MarkedContentFrame] = []
        self._overflow = 0
        self.floor = 0

    @property
    def depth(self) -> int:
        return len(self.frames) + self._overflow

    def push(self, layer: Optional[Layer] = None, hidden: bool = False, mcid: Optional[int] = None) -> None:
        if len(self.frames) >= MAX_MARKED_CONTENT_DEPTH:
            self._overflow += 1
            return
        suppressed = hidden or self.suppressed
        self.frames.append(MarkedContentFrame(layer=layer, suppressed=suppressed, mcid=mcid))

    def pop(self) -> None:
        if self.depth <= self.floor:
            logger.debug("Ignoring EMC without matching BDC/BMC")
        elif self._overflow:
            self._overflow -= 1
        else:
            self.frames.pop()

    def restore_to_depth(self, depth: int) -> None:
        self.floor = min(self.floor, depth)
        while self.depth > depth:
            self.pop()

    @property
    def suppressed(self) -> bool:
        return bool(self.frames) and self.frames[-1].suppressed

    @property
    def active_layer(self) -> Optional[Layer]:
        for frame in reversed(self.frames):
            if frame.layer is not None:
                return frame.layer
        return None

    @property
    def active_mcid(self) -> Optional[int]:
        for frame in reversed(self.frames):
            if frame.mcid is not None:
                return frame.mcid
        return None
