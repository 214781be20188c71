from .cost_tracker import CostTracker
from .ledger import InMemoryUsageLedger, SQLUsageLedger, UsageLedger, create_ledger

__all__ = [
    "CostTracker",
    "InMemoryUsageLedger",
    "SQLUsageLedger",
    "UsageLedger",
    "create_ledger",
]
