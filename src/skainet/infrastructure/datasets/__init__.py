from ._array_dataset import ArrayDataset

__all__ = ["ArrayDataset"]
