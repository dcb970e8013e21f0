"""Benchmarking engine for cyclebench.

Runs a unit of work in adaptively sized cycles until its mean time is
known to within a target relative margin of error (or the time budget
runs out), and compares several units under the same conditions.
"""
