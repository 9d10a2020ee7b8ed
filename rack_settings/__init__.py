"""Settings persistence and asset path resolution for the Rack host."""

__version__ = "0.6.0"
