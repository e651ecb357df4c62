"""
Package initializer for vacinaos.
"""

__version__ = "1.0.0"

# Version metadata — included in all output artifacts
ENGINE_VERSION = __version__
RULES_VERSIONS = {
    "catalog": "catalog_v1",
}

__all__ = ["__version__", "ENGINE_VERSION", "RULES_VERSIONS"]
