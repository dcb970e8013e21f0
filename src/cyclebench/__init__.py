"""cyclebench: adaptive-sampling latency benchmarks for async and sync callables."""

__version__ = "0.1.0"
