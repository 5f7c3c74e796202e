"""casegraph: entity relation graph and location aggregation for case files."""

__version__ = "0.1.0"
