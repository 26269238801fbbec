"""
palette_search — Color-palette indexing and retrieval for image corpora.

Quantizes every image to a 12-color palette histogram, builds a
persisted per-category index ranked by color dominance, and answers
keyword and color queries with bounded, deterministic results.

Modules:
    quantizer       Nearest-color palette classification + histograms
    preprocessing   Pixel buffer normalization and OpenCV decoding
    signature       Per-image histogram records
    pool            Capacity-bounded collection of processed records
    catalog         Catalog JSON loading
    catalog_index   Category x color index build and persistence
    index_builder   Concurrent indexing pipeline
    engine          Keyword and color QueryEngine
    store           Persistent key/value backends
    config          Tunables and the explicit SearchContext
    cli             Command-line interface
"""

__version__ = "1.0.0"
