"""storefront: order dispatch and conversion event delivery."""

__version__ = "0.1.0"
