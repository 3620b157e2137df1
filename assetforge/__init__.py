"""
AssetForge: content-revisioned static assets with asset:// reference rewriting.

Built on asyncio with a shared manifest store, bounded-retry resolution, and
debounced manifest persistence.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
