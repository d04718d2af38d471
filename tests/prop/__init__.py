"""
Property-based tests for the Thumb encoder, decoder and listing round trip.

This package hosts Hypothesis strategies and the test entrypoints for both
the fast CI lane and the nightly fuzz job.
"""
