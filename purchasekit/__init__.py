"""
purchasekit - client-side purchase management for in-app goods.
"""

from purchasekit.manager import PurchaseManager

__all__ = ["PurchaseManager"]
