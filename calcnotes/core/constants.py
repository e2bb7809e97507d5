"""
calcnotes Core Constants
"""

# Only canvas items of this type take part in calculations
NUMERIC_NOTE_TYPE = "numeric-note"

# Metadata record holding the dependency index
DEFAULT_METADATA_KEY = "calculatorNotes"

# Current layout of the persisted index record
SCHEMA_VERSION = 1

MIN_SOURCES = 2
DECIMAL_PLACES = 6

# Vertical gap between the lowest source and a new calculator note
PLACEMENT_OFFSET = 200.0

SUM_FILL_COLOR = "#d1c4e9"
PRODUCT_FILL_COLOR = "#c8e6c8"
TEXT_ALIGN = "center"
