"""Media repository client."""

from kurento_test.repository.client import RepositoryClient, RepositoryItem

__all__ = ["RepositoryClient", "RepositoryItem"]
