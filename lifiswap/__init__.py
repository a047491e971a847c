"""Top-level package for LI.FI swap automation on Solana."""

from importlib import metadata


def __getattr__(name: str) -> str:
    """Expose the package version via ``lifiswap.__version__``."""
    if name == "__version__":
        try:
            return metadata.version("lifiswap")
        except metadata.PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)


__all__ = ["__version__"]
