"""Ring assembly and import tuning constants."""

# A closed ring needs at least three segments; two segments joining the
# same pair of points double back on themselves.
MIN_RING_SEGMENTS = 3

# Number of imported elements between storage statistics log lines
PROGRESS_LOG_INTERVAL = 100_000

# Member role that marks a relation way as an inner boundary (hole)
INNER_ROLE = "inner"

# Relation tag that selects multipolygon relations for ring assembly
MULTIPOLYGON_TAG: tuple[str, str] = ("type", "multipolygon")
