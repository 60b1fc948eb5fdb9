"""
Posts core REST API

This package serves the ``post`` resource over HTTP and stores it with
optimistic concurrency control: every update has to present the version
of the record it was based on, otherwise the update is rejected.
"""

__version__ = "1.0.0"
