"""BuildGate: build-performance comparison gate."""

__version__ = "0.3.0"
