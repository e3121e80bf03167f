"""Main/post phase pipelines."""
