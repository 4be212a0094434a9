"""relnotes command line interface."""
