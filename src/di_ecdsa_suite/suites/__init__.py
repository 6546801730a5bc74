"""Conformance suites, run with ``vc-di-ecdsa run``."""
