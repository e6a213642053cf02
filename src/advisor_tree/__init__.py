"""advisor-tree: force-directed layout and lineage highlighting for advisor trees."""

__version__ = "0.1.0"
