"""Fill styles for rasterized multipolygon areas."""

DEFAULT_OPACITY = 1.0

FILL_STYLES: dict[str, dict] = {
    "water":    {"color": (170, 211, 223), "opacity": 1.0, "description": "Lakes, reservoirs and riverbanks"},
    "forest":   {"color": (173, 209, 158), "opacity": 1.0, "description": "Wood and managed forest"},
    "grass":    {"color": (205, 235, 176), "opacity": 1.0, "description": "Grassland and meadows"},
    "farmland": {"color": (238, 240, 213), "opacity": 1.0, "description": "Plowed fields and farmland"},
    "building": {"color": (217, 208, 201), "opacity": 1.0, "description": "Building footprints"},
    "wetland":  {"color": (170, 211, 223), "opacity": 0.5, "description": "Marsh and wetland overlays"},
    "sand":     {"color": (245, 233, 198), "opacity": 1.0, "description": "Beaches and sandy areas"},
}
