from .resource import TransactionResource
from .work_item import WorkItem, WorkScope

__all__ = ("TransactionResource", "WorkItem", "WorkScope")
