"""
Deterministic parsing rules.

Everything the parser treats as schema knowledge lives here, so new exports
can be supported by editing tables rather than parser control flow.
"""

import re

# --- Header detection ---
HEADER_SENTINEL = "tipodato"  # "Tipo_Dato", compared without case or separators
HEADER_SEPARATORS = re.compile(r"[\s_\-.]+")

# --- Comments, sections, metadata ---
COMMENT_MARKER = "#"
SECTION_MARKER = re.compile(r"^##\s*(.+)$")

# (pattern, record key); value is whatever follows the colon
METADATA_PATTERNS = (
    (re.compile(r"^#\s*Codice\s+Agente:\s*(.*)$", re.IGNORECASE), "Agente_Codice"),
    (re.compile(r"^#\s*Ragione\s+Sociale:\s*(.*)$", re.IGNORECASE), "Agente_Nome"),
    (re.compile(r"^#\s*Periodo:\s*(.*)$", re.IGNORECASE), "Periodo"),
)

SECTION_KEY = "__Sezione"

# --- Delimiters ---
# No comma: Italian numbers use it as the decimal separator.
DELIMITER_CANDIDATES = (
    re.compile(r"\t+"),
    re.compile(r" {2,}"),
    re.compile(r";"),
    re.compile(r"\|"),
)
FALLBACK_DELIMITER = re.compile(r"\t+| {2,}")

# Flat files (no Tipo_Dato header) are plain CSV, so comma is allowed there.
FLAT_DELIMITER_CANDIDATES = (",", ";", "\t", "|")
# Flat files only treat "# " and "## " lines as comments; "#ID" can be a column.
FLAT_COMMENT = re.compile(r"^#{1,2}\s")

# --- Ragged rows ---
# Columns whose values may contain the delimiter; excess cells are joined back
# into them. Headers without any of these are truncated.
FREE_TEXT_COLUMNS = {
    "Ragione_Sociale_Cliente": "join",
    "Categoria": "join",
}
DEFAULT_REPAIR = "truncate"

# --- Values ---
SENTINEL_VALUES = frozenset({999999.0, 99999900.0})
PERCENT_COLUMN_HINT = "percentuale"
MAX_PERCENT = 1000.0
