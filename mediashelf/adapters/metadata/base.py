from abc import ABC, abstractmethod
from typing import Any

from mediashelf.utils.composite_key import MediaKind


class AbstractMetadataClient(ABC):
    """Interface for upstream movie/series metadata providers.

    Implementations return the provider's raw JSON; normalization happens in
    the service layer.
    """

    @abstractmethod
    async def search(self, query: str, kind: MediaKind | None = None) -> dict[str, Any]:
        """Search titles by free text.

        Args:
            query: Trimmed search text.
            kind: Restrict to one kind, or None for a mixed search.

        Returns:
            dict[str, Any]: Raw search payload (``results``, ``total_results``).

        Raises:
            UpstreamAppError: If the provider fails or answers non-2xx.
        """
        ...

    @abstractmethod
    async def details(self, kind: MediaKind, external_id: int) -> dict[str, Any]:
        """Fetch the full record for one title.

        Raises:
            UpstreamAppError: If the provider fails or answers non-2xx.
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections; a no-op for clients that hold none."""
        return None
