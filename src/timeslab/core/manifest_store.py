"""In-process catalog of dataset manifests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from timeslab.core.exceptions import DatasetNotFoundError


if TYPE_CHECKING:
    from timeslab.core.models import Manifest


class ManifestStore:
    """Holds the current manifest for each registered dataset.

    Manifests are frozen and only ever swapped whole, so a caller that
    took a manifest with get_manifest() keeps a consistent snapshot even
    if a newer one is installed while it is still resolving a range.
    """

    def __init__(self) -> None:
        self._manifests: dict[str, Manifest] = {}

    @property
    def datasets(self) -> list[str]:
        """Names of all registered datasets, sorted."""
        return sorted(self._manifests)

    def __contains__(self, dataset: object) -> bool:
        return dataset in self._manifests

    def register(self, manifest: Manifest) -> None:
        """Register a dataset with its first manifest.

        Raises:
            ValueError: If the dataset is already registered.
        """
        if manifest.dataset in self._manifests:
            raise ValueError(
                f"Dataset '{manifest.dataset}' is already registered; "
                "use replace_manifest() to install a newer manifest"
            )
        self._manifests[manifest.dataset] = manifest

    def get_manifest(self, dataset: str) -> Manifest:
        """Return the current manifest for dataset.

        Raises:
            DatasetNotFoundError: If the dataset was never registered.
        """
        try:
            return self._manifests[dataset]
        except KeyError:
            raise DatasetNotFoundError(dataset, available=self.datasets) from None

    def replace_manifest(self, dataset: str, manifest: Manifest) -> Manifest:
        """Atomically install a new manifest for a registered dataset.

        Returns:
            The manifest that was replaced.

        Raises:
            DatasetNotFoundError: If the dataset was never registered.
            ValueError: If manifest describes a different dataset.
        """
        if manifest.dataset != dataset:
            raise ValueError(
                f"Manifest describes '{manifest.dataset}', not '{dataset}'"
            )
        previous = self.get_manifest(dataset)
        self._manifests[dataset] = manifest
        return previous
