"""
Cross-file record comparison

Compares the LogicalTables of 2..N documents record by record.

Modules:
- models: compared cells/records, summary, persisted ComparisonRecord
- table_normalizer: merge a file's tables and unify headers across files
- similarity: key normalization and bigram similarity
- alias_resolver: union-find over fuzzy-matched keys
- record_differ: key-based comparison across files
- line_differ: plain line diff
- report_export: HTML / CSV / Excel reports
- history_db: sqlite history of saved comparisons
"""

__version__ = "1.0.0"
__all__ = [
    "models",
    "table_normalizer",
    "similarity",
    "alias_resolver",
    "record_differ",
    "line_differ",
    "report_export",
    "history_db",
]
