"""Patchforge core: parsing, fetching, reconciliation and remediation."""
