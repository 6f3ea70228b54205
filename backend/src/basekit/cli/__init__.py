"""basekit command-line interface."""
