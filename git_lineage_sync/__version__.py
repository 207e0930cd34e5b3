"""Version information for git-lineage-sync."""

__version__ = "0.1.0"
