"""Abstract base class for test ownership resolvers."""

from abc import ABC, abstractmethod


class OwnershipResolver(ABC):
    """Abstract base for mapping source files to owners."""

    @abstractmethod
    def resolve_owners(self, file_path: str) -> list[str]:
        """Return the owners of a file.

        Args:
            file_path: File path relative to the repository root

        Returns:
            Owners in declaration order, empty if nothing matches

        """

    def resolve_owner(self, file_path: str) -> str | None:
        """Return the primary owner of a file, if any."""
        owners = self.resolve_owners(file_path)
        return owners[0] if owners else None
