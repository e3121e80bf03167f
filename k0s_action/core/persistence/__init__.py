"""Phase marker persistence."""
