"""
PDF Dictionary Keys and Name Constants
"""

# Resource Dictionary Keys
KEY_RESOURCES = "/Resources"
KEY_XOBJECT = "/XObject"
KEY_PROPERTIES = "/Properties"

# Page tree and catalog
KEY_CONTENTS = "/Contents"
KEY_MEDIABOX = "/MediaBox"
KEY_PARENT = "/Parent"
KEY_KIDS = "/Kids"
KEY_PAGES = "/Pages"
KEY_ANNOTS = "/Annots"

# Object Types and Subtypes
KEY_TYPE = "/Type"
KEY_SUBTYPE = "/Subtype"
VAL_FORM = "/Form"

# Form Properties
KEY_MATRIX = "/Matrix"
KEY_BBOX = "/BBox"

# Optional content (PDF spec 8.11)
KEY_OC = "/OC"
KEY_OC_PROPERTIES = "/OCProperties"
KEY_OCGS = "/OCGs"
KEY_OC_DEFAULT = "/D"
KEY_ON = "/ON"
KEY_OFF = "/OFF"
KEY_ORDER = "/Order"
KEY_BASE_STATE = "/BaseState"
KEY_NAME = "/Name"
VAL_OCG = "/OCG"
VAL_OCMD = "/OCMD"
VAL_OFF = "/OFF"

# Marked content / structure tree (PDF spec 14.6, 14.7)
KEY_MCID = "/MCID"
KEY_STRUCT_TREE_ROOT = "/StructTreeRoot"
KEY_K = "/K"
KEY_PG = "/Pg"
KEY_S = "/S"
KEY_T = "/T"
KEY_A = "/A"
KEY_P = "/P"
KEY_N = "/N"
KEY_V = "/V"

# Legacy geospatial dictionary (LGIDict)
KEY_LGIDICT = "/LGIDict"
KEY_NEATLINE = "/Neatline"
KEY_CTM = "/CTM"
KEY_REGISTRATION = "/Registration"
KEY_PROJECTION = "/Projection"
KEY_PROJECTION_TYPE = "/ProjectionType"
KEY_DATUM = "/Datum"
KEY_UNITS = "/Units"
KEY_ZONE = "/Zone"
KEY_HEMISPHERE = "/Hemisphere"
KEY_DESCRIPTION = "/Description"

# ISO 32000 geospatial measure
KEY_MEASURE = "/Measure"
KEY_GPTS = "/GPTS"
KEY_LPTS = "/LPTS"
KEY_BOUNDS = "/Bounds"
KEY_GCS = "/GCS"
KEY_WKT = "/WKT"
KEY_EPSG = "/EPSG"
VAL_GEO = "/GEO"

# Document information and metadata (PDF spec 14.3)
KEY_INFO = "/Info"
KEY_METADATA = "/Metadata"
INFO_KEYS = {
    "/Author": "AUTHOR",
    "/Creator": "CREATOR",
    "/Keywords": "KEYWORDS",
    "/Subject": "SUBJECT",
    "/Title": "TITLE",
    "/Producer": "PRODUCER",
    "/CreationDate": "CREATION_DATE",
    "/ModDate": "MOD_DATE",
}
