"""Engine limits and logging setup."""

import sys

from loguru import logger


# Inputs above this size are rejected by the json/xml parsers before parsing.
MAX_MESSAGE_BYTES = 10 * 1024 * 1024  # 10 MB

# Depth calculation stops descending at this level and reports it.
MAX_JSON_DEPTH = 100

# Analysis tree bounds
MAX_TREE_DEPTH = 15
MAX_TREE_ITEMS = 1000
TREE_ARRAY_ITEMS = 50
TREE_OBJECT_ENTRIES = 100
TREE_VALUE_CHARS = 500

# Listing bounds used in ParseResult.analysis
STRUCTURE_LIMIT = 20
FIELD_PREVIEW_LIMIT = 10
TEXT_PREVIEW_CHARS = 100
SUMMARY_VALUE_CHARS = 50


def setup_logging(level="INFO"):
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level, backtrace=True, diagnose=False)
    return logger
