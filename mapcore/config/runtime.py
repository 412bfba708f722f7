"""Logging and worker configuration."""

import os

LOG_LEVEL = os.getenv("MAPCORE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# Default thread count for batch ring assembly (capped at 8 to be reasonable)
ASSEMBLY_WORKERS = int(os.getenv("MAPCORE_WORKERS", str(min(8, os.cpu_count() or 2))))
