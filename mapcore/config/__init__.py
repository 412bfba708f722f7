"""
Application configuration package.

Re-exports all configuration values from sub-modules so that
``from config import X`` works for every setting.

Configuration is split into focused modules:
- geometry: MIN_RING_SEGMENTS, PROGRESS_LOG_INTERVAL, INNER_ROLE, MULTIPOLYGON_TAG
- rendering: DEFAULT_OPACITY, FILL_STYLES
- runtime: LOG_LEVEL, LOG_FORMAT, ASSEMBLY_WORKERS
- log: configure_logging
"""

# Ring assembly and import
from config.geometry import (
    MIN_RING_SEGMENTS, PROGRESS_LOG_INTERVAL, INNER_ROLE, MULTIPOLYGON_TAG,
)

# Fill styles
from config.rendering import DEFAULT_OPACITY, FILL_STYLES

# Logging and workers
from config.runtime import LOG_LEVEL, LOG_FORMAT, ASSEMBLY_WORKERS
from config.log import configure_logging
