"""Action input loading."""
