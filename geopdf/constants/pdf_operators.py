"""
PDF Operator Constants

Centralized definitions of the PDF content stream operators the geometry
interpreter understands. Organized by functional category according to the PDF
specification.

Reference: PDF 32000-1:2008 specification, Appendix A
"""

# ==============================================================================
# Graphics State Operators (PDF spec 8.4.4)
# ==============================================================================
OP_SAVE_STATE = b'q'                 # Save graphics state
OP_RESTORE_STATE = b'Q'              # Restore graphics state
OP_CTM = b'cm'                       # Modify current transformation matrix

# ==============================================================================
# XObject Operators (PDF spec 8.8)
# ==============================================================================
OP_DO_XOBJECT = b'Do'     # Invoke named XObject (image, form, etc.)

# ==============================================================================
# Inline Image Operators (PDF spec 8.9.7)
# ==============================================================================
OP_BEGIN_INLINE_IMAGE = b'BI'
OP_INLINE_IMAGE_DATA = b'ID'
OP_END_INLINE_IMAGE = b'EI'

# ==============================================================================
# Path Construction Operators (PDF spec 8.5.2)
# ==============================================================================
OP_MOVETO = b'm'          # Begin new subpath (moveto)
OP_LINETO = b'l'          # Append straight line segment (lineto)
OP_CURVETO = b'c'         # Append cubic Bézier curve
OP_CURVETO_V = b'v'       # Append cubic Bézier curve (initial point replicated)
OP_CURVETO_Y = b'y'       # Append cubic Bézier curve (final point replicated)
OP_RECTANGLE = b're'      # Append rectangle
OP_CLOSEPATH = b'h'       # Close current subpath

# Operand count required by each construction operator
PATH_OPERAND_COUNTS = {
    OP_MOVETO: 2,
    OP_LINETO: 2,
    OP_CURVETO: 6,
    OP_CURVETO_V: 4,
    OP_CURVETO_Y: 4,
    OP_RECTANGLE: 4,
    OP_CLOSEPATH: 0,
}

# ==============================================================================
# Path Painting Operators (PDF spec 8.5.3)
# ==============================================================================
OP_STROKE = b'S'
OP_CLOSE_STROKE = b's'
OP_FILL = b'f'
OP_FILL_OBSOLETE = b'F'
OP_FILL_EVEN_ODD = b'f*'
OP_FILL_STROKE = b'B'
OP_FILL_STROKE_EVEN_ODD = b'B*'
OP_CLOSE_FILL_STROKE = b'b'
OP_CLOSE_FILL_STROKE_EVEN_ODD = b'b*'
OP_END_PATH = b'n'

PATH_PAINTING_OPS = {
    OP_STROKE, OP_CLOSE_STROKE, OP_FILL, OP_FILL_OBSOLETE, OP_FILL_EVEN_ODD,
    OP_FILL_STROKE, OP_FILL_STROKE_EVEN_ODD, OP_CLOSE_FILL_STROKE,
    OP_CLOSE_FILL_STROKE_EVEN_ODD, OP_END_PATH
}

FILL_OPS = {
    OP_FILL, OP_FILL_OBSOLETE, OP_FILL_EVEN_ODD, OP_FILL_STROKE,
    OP_FILL_STROKE_EVEN_ODD, OP_CLOSE_FILL_STROKE, OP_CLOSE_FILL_STROKE_EVEN_ODD
}

# Painting operators that close the current subpath before painting
CLOSING_PAINT_OPS = {OP_CLOSE_STROKE, OP_CLOSE_FILL_STROKE, OP_CLOSE_FILL_STROKE_EVEN_ODD}

# W and W* (clipping) are recognized but never change the emitted geometry

# ==============================================================================
# Marked Content Operators (PDF spec 10.5)
# ==============================================================================
OP_BMC = b'BMC'  # Begin marked-content sequence
OP_BDC = b'BDC'  # Begin marked-content sequence with property list
OP_EMC = b'EMC'  # End marked-content sequence

# ==============================================================================
# Keywords that are values rather than operators inside arrays/dictionaries
# ==============================================================================
KEYWORD_TRUE = b'true'
KEYWORD_FALSE = b'false'
KEYWORD_NULL = b'null'
