"""Session registry: live connection ID -> display name."""
from typing import Dict, List, Optional, Tuple


class SessionRegistry:
    """Maps each live, named connection to its display name.

    Display names are not unique: during a reconnect window the same name
    can be held by two connection IDs until the stale one disconnects.

    Mutations are applied in the order the coordinating component issues
    them; the registry itself does no locking.
    """

    def __init__(self) -> None:
        # connection_id -> display name (insertion order = registration order)
        self._names: Dict[str, str] = {}

    def register(self, connection_id: str, display_name: str) -> None:
        """Insert or overwrite the entry for ``connection_id``."""
        self._names[connection_id] = display_name

    def lookup(self, connection_id: str) -> Optional[str]:
        """Return the display name for a connection, or None if unnamed/gone."""
        return self._names.get(connection_id)

    def remove(self, connection_id: str) -> Optional[str]:
        """Delete the entry for ``connection_id``; no-op if absent.

        Returns:
            The removed display name, or None if there was no entry.
        """
        return self._names.pop(connection_id, None)

    def name_in_use(self, display_name: str, exclude: Optional[str] = None) -> bool:
        """Check whether any live connection currently holds ``display_name``.

        Args:
            display_name: Name to look for.
            exclude: Connection ID to ignore (typically the caller itself).
        """
        return any(
            name == display_name
            for connection_id, name in self._names.items()
            if connection_id != exclude
        )

    def entries(self) -> List[Tuple[str, str]]:
        """Return ``(connection_id, display_name)`` pairs in registration order."""
        return list(self._names.items())

    def clear(self) -> None:
        self._names.clear()

    def __len__(self) -> int:
        return len(self._names)
