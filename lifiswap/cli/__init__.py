"""Command line interface for lifiswap."""
