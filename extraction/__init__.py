"""
Table extraction for cross-file comparison

Turns input documents into LogicalTables (headers + rows).

Modules:
- models: PositionedFragment / LogicalTable
- heuristics: heuristics JSON loading and merging onto defaults
- spatial_reconstructor: rebuild a table from positioned PDF text
- subfields: pull "Label: value" attributes out of description cells
- pdf_fragments: PyMuPDF text spans -> PositionedFragments
- grid_ingest: xlsx / csv / docx / plain-text grids
- document_loader: route a file to the right extractor
"""

__version__ = "1.0.0"
__all__ = [
    "models",
    "heuristics",
    "spatial_reconstructor",
    "subfields",
    "pdf_fragments",
    "grid_ingest",
    "document_loader",
]
