"""setup-k0s — provision a single-node k0s cluster on an ephemeral CI host."""

__version__ = "0.1.0"
