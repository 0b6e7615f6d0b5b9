"""Version management for render-engine-query."""

try:
    from ._version import version as __version__
except ImportError:
    # Fallback for development environments without git tags
    __version__ = "0.0.0.dev0"
