"""
Inventory ledger services.

Modules are imported directly (inventory.services.coordinator, ...);
nothing is re-exported here so models can import from submodules freely.
"""
