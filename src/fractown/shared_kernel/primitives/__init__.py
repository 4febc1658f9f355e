"""
Shared Kernel primitives.

    from fractown.shared_kernel.primitives import AdminId
"""

from .admin_id import AdminId

__all__ = ["AdminId"]
