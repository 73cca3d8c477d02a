"""
Content Stream Interpreter

Walks a page content stream (and the form XObjects it draws) and rebuilds the
vector geometry it paints. Only the operators needed for polylines and
polygons are interpreted: graphics state, path construction and painting,
marked content and Do. Everything else is skipped.

Malformed content never raises: missing operands skip the operator, excess
restores are ignored and self-referencing forms end their branch.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Set

from geopdf.constants.pdf_keys import (
    KEY_MATRIX,
    KEY_MCID,
    KEY_OC,
    KEY_PROPERTIES,
    KEY_RESOURCES,
    KEY_SUBTYPE,
    KEY_XOBJECT,
    VAL_FORM,
)
from geopdf.constants.pdf_operators import (
    CLOSING_PAINT_OPS,
    FILL_OPS,
    KEYWORD_FALSE,
    KEYWORD_NULL,
    KEYWORD_TRUE,
    OP_BDC,
    OP_BMC,
    OP_CLOSEPATH,
    OP_CTM,
    OP_CURVETO,
    OP_CURVETO_V,
    OP_CURVETO_Y,
    OP_DO_XOBJECT,
    OP_EMC,
    OP_END_PATH,
    OP_LINETO,
    OP_MOVETO,
    OP_RECTANGLE,
    OP_RESTORE_STATE,
    OP_SAVE_STATE,
    PATH_OPERAND_COUNTS,
    PATH_PAINTING_OPS,
)
from geopdf.engine.document import DocumentModel
from geopdf.models.pdf_types import Layer, ObjectRef, PageFeatures, PdfFeature
from geopdf.processors.geometry_builder import PathState, build_features
from geopdf.processors.layer_resolver import LayerResolver
from geopdf.processors.pdf_graphics import (
    IDENTITY_MATRIX,
    GraphicsStateTracker,
    MarkedContentStack,
    Matrix,
)
from geopdf.processors.tokenizer import PdfName, TokenType, iter_tokens
from geopdf.utils.pdf_objects import as_int, as_name, get, number_list

logger = logging.getLogger(__name__)

OPERAND_STACK_SIZE = 8
DEFAULT_MAX_RECURSION_DEPTH = 16

_KEYWORD_VALUES = {KEYWORD_TRUE: True, KEYWORD_FALSE: False, KEYWORD_NULL: None}


@dataclass
class ParseContext:
    """Mutable state owned by a single page parse."""
    resources: Any = None
    graphics: GraphicsStateTracker = field(default_factory=GraphicsStateTracker)
    marked_content: MarkedContentStack = field(default_factory=MarkedContentStack)
    path: PathState = field(default_factory=PathState)
    active_forms: Set[ObjectRef] = field(default_factory=set)
    features: List[PdfFeature] = field(default_factory=list)
    paint_count: int = 0
    stopped: bool = False


def _numeric_tail(operands: Deque[Any], count: int) -> Optional[List[float]]:
    """Last `count` operands if they are all numbers, otherwise None."""
    if count == 0:
        return []
    if len(operands) < count:
        return None
    tail = list(operands)[-count:]
    if not all(isinstance(v, float) for v in tail):
        return None
    return tail


class _Composite:
    """Array or dictionary being assembled from tokens."""

    def __init__(self, is_dict: bool):
        self.is_dict = is_dict
        self.items: List[Any] = []

    def value(self) -> Any:
        if not self.is_dict:
            return self.items
        result: Dict[str, Any] = {}
        pairs = self.items
        for i in range(0, len(pairs) - 1, 2):
            key = pairs[i]
            if isinstance(key, PdfName):
                result[key] = pairs[i + 1]
        return result


class ContentInterpreter:
    """
    Rebuilds tagged geometries from page content streams.

    Args:
        document: DocumentModel supplying content bytes and resources
        layer_resolver: Resolver used for /OC marked content (None disables layers)
        ignore_layers: Emit geometry even inside hidden layers
        max_recursion_depth: Maximum nesting of form XObjects
        stop: Callable polled between operators; returning True ends the parse
    """

    def __init__(
        self,
        document: DocumentModel,
        layer_resolver: Optional[LayerResolver] = None,
        ignore_layers: bool = False,
        max_recursion_depth: int = DEFAULT_MAX_RECURSION_DEPTH,
        stop: Optional[Callable[[], bool]] = None,
    ):
        self.document = document
        self.layer_resolver = layer_resolver
        self.ignore_layers = ignore_layers
        self.max_recursion_depth = max_recursion_depth
        self.stop = stop

    def parse_page(self, page_index: int, initial_ctm: Matrix = IDENTITY_MATRIX) -> PageFeatures:
        """Parse one page (0-based index). `initial_ctm` is applied beneath all content."""
        page = self.document.page(page_index)
        data = self.document.page_content(page)
        resources = self.document.resources(page)

        ctx = ParseContext(resources=resources, graphics=GraphicsStateTracker(initial_ctm))
        self._run(ctx, data, resources, 0)

        logger.debug(
            f"Page {page_index + 1}: {len(ctx.features)} features"
            f"{' (stopped)' if ctx.stopped else ''}"
        )
        return PageFeatures(page_number=page_index + 1, features=ctx.features, stopped=ctx.stopped)

    def parse_stream(
        self,
        data: bytes,
        resources: Any = None,
        initial_ctm: Matrix = IDENTITY_MATRIX,
    ) -> ParseContext:
        """Interpret a bare content stream; returns the finished context."""
        ctx = ParseContext(resources=resources, graphics=GraphicsStateTracker(initial_ctm))
        self._run(ctx, data, resources, 0)
        return ctx

    def _should_stop(self, ctx: ParseContext) -> bool:
        if ctx.stopped:
            return True
        if self.stop is not None and self.stop():
            logger.debug("Stop requested, ending parse")
            ctx.stopped = True
        return ctx.stopped

    def _run(self, ctx: ParseContext, data: bytes, resources: Any, depth: int) -> None:
        operands: Deque[Any] = deque(maxlen=OPERAND_STACK_SIZE)
        composites: List[_Composite] = []

        def push_value(value: Any) -> None:
            if composites:
                composites[-1].items.append(value)
            else:
                operands.append(value)

        for token in iter_tokens(data):
            kind = token.type
            if kind == TokenType.ARRAY_START:
                composites.append(_Composite(is_dict=False))
            elif kind == TokenType.DICT_START:
                composites.append(_Composite(is_dict=True))
            elif kind in (TokenType.ARRAY_END, TokenType.DICT_END):
                if composites:
                    push_value(composites.pop().value())
            elif kind != TokenType.OPERATOR:
                push_value(token.value)
            elif token.value in _KEYWORD_VALUES:
                push_value(_KEYWORD_VALUES[token.value])
            else:
                # An operator terminates any unbalanced composite
                composites.clear()
                if self._should_stop(ctx):
                    return
                self._execute(ctx, token.value, operands, resources, depth)
                operands.clear()
                if ctx.stopped:
                    return

    def _execute(self, ctx: ParseContext, op: bytes, operands: Deque[Any], resources: Any, depth: int) -> None:
        graphics = ctx.graphics
        path = ctx.path

        if op == OP_SAVE_STATE:
            graphics.save_state()

        elif op == OP_RESTORE_STATE:
            graphics.restore_state()

        elif op == OP_CTM:
            args = _numeric_tail(operands, 6)
            if args is not None:
                graphics.update_ctm(*args)

        elif op in PATH_OPERAND_COUNTS:
            args = _numeric_tail(operands, PATH_OPERAND_COUNTS[op])
            if args is None:
                logger.debug(f"Skipping {op.decode()} with missing operands")
                return
            self._construct_path(graphics, path, op, args)

        elif op in PATH_PAINTING_OPS:
            self._paint(ctx, op)

        elif op == OP_BDC:
            self._begin_marked_content(ctx, operands, resources)

        elif op == OP_BMC:
            ctx.marked_content.push()

        elif op == OP_EMC:
            ctx.marked_content.pop()

        elif op == OP_DO_XOBJECT:
            if operands and isinstance(operands[-1], PdfName):
                self._do_xobject(ctx, operands[-1], resources, depth)

        # W, W* and all other operators leave the geometry untouched

    @staticmethod
    def _construct_path(graphics: GraphicsStateTracker, path: PathState, op: bytes, args: List[float]) -> None:
        if op == OP_MOVETO:
            path.move_to(graphics.transform_point(args[0], args[1]))
        elif op == OP_LINETO:
            path.line_to(graphics.transform_point(args[0], args[1]))
        elif op == OP_CURVETO:
            # Curves are flattened to a segment ending at their final point
            path.line_to(graphics.transform_point(args[4], args[5]))
        elif op in (OP_CURVETO_V, OP_CURVETO_Y):
            path.line_to(graphics.transform_point(args[2], args[3]))
        elif op == OP_RECTANGLE:
            x, y, w, h = args
            path.rectangle([
                graphics.transform_point(x, y),
                graphics.transform_point(x + w, y),
                graphics.transform_point(x + w, y + h),
                graphics.transform_point(x, y + h),
            ])
        elif op == OP_CLOSEPATH:
            path.close()

    def _paint(self, ctx: ParseContext, op: bytes) -> None:
        path = ctx.path
        if op in CLOSING_PAINT_OPS:
            path.close()

        if op != OP_END_PATH:
            fill = op in FILL_OPS
            if fill:
                path.has_fill = True
            marked = ctx.marked_content
            if self.ignore_layers or not marked.suppressed:
                ctx.features.extend(build_features(
                    path,
                    fill,
                    layer=marked.active_layer,
                    mcid=marked.active_mcid,
                    stream_index=ctx.paint_count,
                ))
            ctx.paint_count += 1

        path.reset()

    def _hidden(self, layer: Optional[Layer]) -> bool:
        if layer is None or self.layer_resolver is None:
            return False
        return not self.layer_resolver.is_visible(layer)

    def _begin_marked_content(self, ctx: ParseContext, operands: Deque[Any], resources: Any) -> None:
        if len(operands) < 2 or not isinstance(operands[-2], PdfName):
            # Keep BDC/EMC balanced even when the operands are unusable
            logger.debug("BDC without tag and properties, pushing anonymous frame")
            ctx.marked_content.push()
            return

        tag = operands[-2]
        props = operands[-1]
        layer: Optional[Layer] = None
        mcid: Optional[int] = None

        if isinstance(props, dict):
            mcid = as_int(props.get("MCID"))
        elif isinstance(props, PdfName):
            prop_name = props
            prop_obj = get(get(resources, KEY_PROPERTIES), f"/{prop_name}")
            mcid = as_int(get(prop_obj, KEY_MCID))
            if tag == "OC" and self.layer_resolver is not None:
                layer = self.layer_resolver.layer_for_property(resources, prop_name)

        ctx.marked_content.push(layer=layer, hidden=self._hidden(layer), mcid=mcid)

    def _do_xobject(self, ctx: ParseContext, name: str, resources: Any, depth: int) -> None:
        xobj = get(get(resources, KEY_XOBJECT), f"/{name}")
        if xobj is None:
            logger.debug(f"XObject /{name} not found in resources")
            return
        if as_name(get(xobj, KEY_SUBTYPE)) != VAL_FORM:
            return

        if depth + 1 > self.max_recursion_depth:
            logger.debug(f"Form /{name} exceeds max recursion depth {self.max_recursion_depth}")
            return
        ref = self.document.object_ref(xobj)
        if ref is not None and ref in ctx.active_forms:
            logger.debug(f"Form /{name} {ref} draws itself, ending branch")
            return

        layer: Optional[Layer] = None
        oc = get(xobj, KEY_OC)
        if oc is not None and self.layer_resolver is not None:
            layer = self.layer_resolver.layer_for_oc(oc)
        hidden = self._hidden(layer)
        if hidden and not self.ignore_layers:
            return

        graphics_depth, graphics_floor = ctx.graphics.depth, ctx.graphics.floor
        marked_depth, marked_floor = ctx.marked_content.depth, ctx.marked_content.floor
        if ref is not None:
            ctx.active_forms.add(ref)
        try:
            ctx.graphics.save_state()
            matrix = number_list(get(xobj, KEY_MATRIX))
            if matrix is not None and len(matrix) == 6:
                ctx.graphics.update_ctm(*matrix)
            if layer is not None:
                ctx.marked_content.push(layer=layer, hidden=hidden)
            form_resources = get(xobj, KEY_RESOURCES)
            if form_resources is None:
                form_resources = resources
            # The form may only unwind what it saved itself
            ctx.graphics.floor = ctx.graphics.depth
            ctx.marked_content.floor = ctx.marked_content.depth
            self._run(ctx, self.document.stream_bytes(xobj), form_resources, depth + 1)
        finally:
            ctx.graphics.restore_to_depth(graphics_depth)
            ctx.marked_content.restore_to_depth(marked_depth)
            ctx.graphics.floor = graphics_floor
            ctx.marked_content.floor = marked_floor
            if ref is not None:
                ctx.active_forms.discard(ref)
