"""Abstract base class for notebook record stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from notebook_ingest.models.notebook import Notebook


class INotebookStore(ABC):
    """Contract for notebook persistence.

    :meth:`claim_metadata_generation` replaces the old "first source in an
    empty notebook" timing guess with an explicit flag: implementations must
    flip ``metadata_claimed`` atomically so that exactly one caller ever
    receives ``True`` for a given notebook.
    """

    @abstractmethod
    async def create_notebook(self, notebook: Notebook) -> Notebook:
        """Insert *notebook* and return the stored record."""

    @abstractmethod
    async def get_notebook(self, notebook_id: str) -> Notebook | None:
        """Return the notebook with *notebook_id*, or ``None`` if absent."""

    @abstractmethod
    async def update_notebook(self, notebook_id: str, **changes: Any) -> Notebook:
        """Apply *changes* and return the updated notebook.

        Raises
        ------
        notebook_ingest.utils.errors.NotebookNotFoundError
            If no notebook with *notebook_id* exists.
        """

    @abstractmethod
    async def claim_metadata_generation(self, notebook_id: str) -> bool:
        """Atomically set ``metadata_claimed`` if it is unset.

        Returns
        -------
        bool
            ``True`` for the single caller that flipped the flag,
            ``False`` for everyone else (including unknown notebooks).
        """
