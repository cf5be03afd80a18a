"""Services package: owner-scoped planner services and the system-only ledger store."""
