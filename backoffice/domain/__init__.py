"""
backoffice.domain — Canonical data models and enumerations.

This package defines the source-of-truth types shared across every layer
of the back office. Nothing in here should import from other backoffice
sub-packages (only stdlib and ``backoffice.core``).
"""
