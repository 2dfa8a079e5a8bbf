"""State/store layer.

This package owns the per-type entity tables. Raw responses are normalized
here (relations flattened into id references), queried synchronously, and
every write is reported through the debounced change notifier.
"""
