"""Operation records, CSV input and output, object data generation and mixed operation distributions for S3 benchmarks."""

__version__ = "0.1.0"

__all__ = [
    "category",
    "csvfmt",
    "csvio",
    "distribution",
    "generator",
    "operation",
    "operations",
]