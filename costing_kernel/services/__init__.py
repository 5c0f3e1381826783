"""Write-side kernel services."""

from costing_kernel.services.base import BaseService

__all__ = ["BaseService"]
