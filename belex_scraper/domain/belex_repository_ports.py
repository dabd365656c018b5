"""
BELEX Repository Ports (Interfaces)

Repository ports define the contract for persistence.
These are Protocol classes following the Ports & Adapters pattern.
Implementations live in the infrastructure layer.
"""
from typing import Any, AsyncContextManager, Dict, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class RecordStore(Protocol):
    """
    Store capability used by the reconciliation engine.

    Every method raises StoreFailure when the underlying store fails.
    """

    async def select(
        self,
        table: str,
        key: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Return the first row whose columns equal every key value, or None."""
        ...

    async def insert(self, table: str, fields: Mapping[str, Any]) -> Optional[int]:
        """Insert a row and return the identity assigned by the store, if any."""
        ...

    async def update(
        self,
        table: str,
        key: Mapping[str, Any],
        dirty_fields: Mapping[str, Any],
    ) -> int:
        """Apply dirty_fields to the rows matching key. Returns rows affected."""
        ...

    def transaction(self) -> AsyncContextManager[Any]:
        """Scope in which every write commits together or not at all."""
        ...

    async def close(self) -> None:
        """Release the underlying connection."""
        ...
