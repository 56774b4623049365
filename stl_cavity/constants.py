"""
Essential constants for the stl_cavity package.

Tolerances and defaults used by the parser, diagnostics, ray caster and
cavity extraction.
"""

# STL text grammar markers
STL_SOLID_KEYWORD = "solid"
STL_FACET_MARKER = "facet normal"
STL_VERTEX_MARKER = "vertex"

# STL binary layout
STL_BINARY_HEADER_SIZE = 80
STL_BINARY_COUNT_SIZE = 4
STL_BINARY_RECORD_SIZE = 50
STL_BINARY_RECORD_FORMAT = '<12fH'
STL_MAX_BINARY_TRIANGLES = 100_000_000  # corruption guard

# STL writing
STL_ASCII_PRECISION = 9  # significant digits, round-trips float32 exactly
STL_DEFAULT_SOLID_NAME = "triangles"
STL_EVEN_HITS_SOLID_NAME = "even_hits"
STL_FLUID_SOLID_NAME = "fluid"

# Geometry tolerances
DEGENERATE_AREA_TOLERANCE = 1e-10   # squared cross-product magnitude
NORMAL_LENGTH_TOLERANCE = 1e-10     # cap / cleaner normal length
WINDING_DOT_TOLERANCE = 1e-5
RAY_PARALLEL_TOLERANCE = 1e-6
RAY_FORWARD_TOLERANCE = 1e-6

# Ray-parity cavity classification defaults
DEFAULT_RAY_ORIGIN_OFFSET = 1e-4
DEFAULT_RAY_T_MIN = 1e-2
DEFAULT_RAY_T_EPS = 1e-4

# Pipeline output names
DEFAULT_OUTPUT_DIR = "output"
DEFAULT_SOLID_FILE = "solid_volume.stl"
DEFAULT_FLUID_FILE = "fluid_volume.stl"
DEFAULT_EVEN_HITS_FILE = "even_hits.stl"
DEFAULT_CONFIG_FILE = "stl_cavity_config.json"

# Progress logging cadence for the quadratic ray cast
CLASSIFY_PROGRESS_INTERVAL = 1000
