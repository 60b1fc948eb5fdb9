"""
Posts core persistence layer

The ``store`` module holds the versioned store, which is the only component
allowed to write post records. The ``database`` module only provides the
engine and session factory it operates on.
"""
