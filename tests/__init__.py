# IMS Test Suite
#
# In-process tests against an in-memory SQLite database:
# - reconciliation sign tables
# - stock service policies and movement log
# - purchase / sale order lifecycles
# - catalog CRUD and HTTP routes
# - CLI commands
#
# Run with: python -m pytest
