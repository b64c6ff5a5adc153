"""Actor permissions for workflow operations."""

from .permissions import PERMISSIONS, WorkflowOperation, is_permitted, require_permission

__all__ = ["PERMISSIONS", "WorkflowOperation", "is_permitted", "require_permission"]
