"""Back-office API for a food-sales operation: orders, stock, finance and customers."""

__version__ = "0.1.0"
