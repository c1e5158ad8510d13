"""
Dataset contracts consumed by the module layer.

A dataset exposes indexed samples (`get_x`, `get_y`), can be split into two
disjoint datasets, shuffled, and iterated in fixed-size batches. Loading and
caching of concrete data sources happens outside this package.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

from ._tensor import ITensor

T = TypeVar("T", bound=ITensor)


@dataclass(frozen=True)
class DataBatch(Generic[T]):
    """
    One batch of samples.

    Attributes
    ----------
    x : ITensor
        Inputs stacked along a leading batch axis.
    y : ITensor
        Targets stacked along a leading batch axis.
    """

    x: T
    y: T

    @property
    def size(self) -> int:
        return self.x.shape[0]


class Dataset(ABC, Generic[T]):
    """
    Abstract indexed dataset.

    Subclasses implement sample access and batch materialization; splitting,
    shuffling and batching build on top of them.
    """

    @property
    @abstractmethod
    def x_size(self) -> int:
        """Number of samples."""

    @abstractmethod
    def get_x(self, index: int) -> T:
        """Input sample at `index`."""

    @abstractmethod
    def get_y(self, index: int) -> T:
        """Target sample at `index`."""

    @abstractmethod
    def split(self, ratio: float) -> tuple["Dataset[T]", "Dataset[T]"]:
        """
        Split into two disjoint datasets.

        Parameters
        ----------
        ratio : float
            Fraction of samples (in ``(0, 1)``) assigned to the first part.
        """

    @abstractmethod
    def shuffle(self) -> "Dataset[T]":
        """Return a dataset with the same samples in a random order."""

    @abstractmethod
    def create_batch(self, indices: list[int]) -> DataBatch[T]:
        """Stack the samples at `indices` into one batch."""

    def batch_iterator(self, batch_size: int, drop_last: bool = False) -> Iterator[DataBatch[T]]:
        """
        Iterate over consecutive batches of `batch_size` samples.

        The final batch is smaller when the sample count is not a multiple of
        `batch_size`, unless `drop_last` is set.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        total = self.x_size
        for start in range(0, total, batch_size):
            indices = list(range(start, min(start + batch_size, total)))
            if drop_last and len(indices) < batch_size:
                return
            yield self.create_batch(indices)

    def __len__(self) -> int:
        return self.x_size
