"""
Packed sub-byte tensor storage.

Two logical Int4 values or four logical Ternary values share one physical
byte of a ``numpy.uint8`` buffer. Elements are addressed by their row-major
flat index.

Int4 layout
-----------
``byte = flat // 2``; even flat indices use the low nibble and odd ones the
high nibble. Values are two's-complement nibbles (``nibble >= 8`` decodes to
``nibble - 16``).

Ternary layout
--------------
``byte = (flat * 2) // 8`` and ``bit = (flat * 2) % 8``. Codes are
``00 -> 0``, ``01 -> 1``, ``10 -> -1``; ``11`` is reserved and rejected on
read.

Writes validate the value range and only touch the bits of the addressed
element.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Iterable, Optional, Union

import numpy as np

from ....domain._dtype import DType
from ....domain._errors import ValueRangeError
from ....domain._shape import Shape
from ._strided import Number, check_array, check_value


class PackedTensorData(ABC):
    """
    Base class for bit-packed integer storage.

    Parameters
    ----------
    shape : Shape | Iterable[int]
        Logical shape.
    buffer : Optional[np.ndarray]
        Packed bytes to adopt (uint8). Zero-filled when omitted.
    """

    DTYPE: ClassVar[DType]

    def __init__(
        self,
        shape: Union[Shape, Iterable[int]],
        buffer: Optional[np.ndarray] = None,
    ) -> None:
        self._shape = shape if isinstance(shape, Shape) else Shape(shape)
        required = self.required_bytes(self._shape.volume)
        if buffer is None:
            buffer = np.zeros(required, dtype=np.uint8)
        else:
            buffer = np.asarray(buffer)
            if buffer.dtype != np.uint8 or buffer.ndim != 1:
                raise ValueError("Packed buffers must be one-dimensional uint8 arrays")
            if buffer.size != required:
                raise ValueError(
                    f"{self.DTYPE.name} data of shape {tuple(self._shape)} needs "
                    f"{required} bytes, got {buffer.size}"
                )
        self._buffer = buffer

    @classmethod
    def required_bytes(cls, count: int) -> int:
        """Bytes needed to pack `count` elements."""
        return cls.DTYPE.bytes_for(count)

    @classmethod
    def from_numpy(cls, values: np.ndarray, shape: Optional[Iterable[int]] = None):
        """
        Pack integer values into a new backing.

        Raises
        ------
        ValueRangeError
            If any value is outside the dtype's range.
        """
        arr = np.asarray(values)
        target = Shape(arr.shape if shape is None else shape)
        flat = arr.reshape(-1)
        if flat.size != target.volume:
            raise ValueError(f"Got {flat.size} values for shape {tuple(target)}")
        check_array(flat, cls.DTYPE)
        return cls(target, cls._pack(flat.astype(np.int64)))

    @property
    def buffer(self) -> np.ndarray:
        """The packed bytes."""
        return self._buffer

    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def dtype(self) -> DType:
        return self.DTYPE

    @property
    def strides(self) -> tuple[int, ...]:
        return self._shape.strides

    @property
    def offset(self) -> int:
        return 0

    def get(self, *indices: int) -> int:
        """Decode the element at `indices`."""
        return self._read(self._shape.index(indices))

    def set(self, *indices: int, value: Number) -> None:
        """
        Encode `value` at `indices`, preserving neighboring elements.

        Raises
        ------
        ValueRangeError
            If `value` is outside the dtype's range.
        """
        flat = self._shape.index(indices)
        check_value(value, self.DTYPE)
        self._write(flat, int(value))

    def to_numpy(self) -> np.ndarray:
        """Decode every element into a new int8 array."""
        return self._unpack(self._buffer, self._shape.volume).reshape(self._shape.dimensions)

    def materialize(self) -> "PackedTensorData":
        return type(self)(self._shape, self._buffer.copy())

    @abstractmethod
    def _read(self, flat: int) -> int: ...

    @abstractmethod
    def _write(self, flat: int, value: int) -> None: ...

    @staticmethod
    @abstractmethod
    def _pack(values: np.ndarray) -> np.ndarray: ...

    @staticmethod
    @abstractmethod
    def _unpack(buffer: np.ndarray, count: int) -> np.ndarray: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shape={tuple(self._shape)}, bytes={self._buffer.size})"


class PackedInt4TensorData(PackedTensorData):
    """Two signed 4-bit values per byte."""

    DTYPE = DType.INT4

    def _read(self, flat: int) -> int:
        byte = int(self._buffer[flat // 2])
        nibble = (byte >> 4) & 0x0F if flat % 2 else byte & 0x0F
        return nibble - 16 if nibble >= 8 else nibble

    def _write(self, flat: int, value: int) -> None:
        nibble = value & 0x0F
        index = flat // 2
        byte = int(self._buffer[index])
        if flat % 2:
            byte = (byte & 0x0F) | (nibble << 4)
        else:
            byte = (byte & 0xF0) | nibble
        self._buffer[index] = byte

    @staticmethod
    def _pack(values: np.ndarray) -> np.ndarray:
        nibbles = (values & 0x0F).astype(np.uint8)
        if nibbles.size % 2:
            nibbles = np.append(nibbles, np.uint8(0))
        return (nibbles[0::2] | (nibbles[1::2] << 4)).astype(np.uint8)

    @staticmethod
    def _unpack(buffer: np.ndarray, count: int) -> np.ndarray:
        nibbles = np.empty(buffer.size * 2, dtype=np.int16)
        nibbles[0::2] = buffer & 0x0F
        nibbles[1::2] = buffer >> 4
        nibbles = nibbles[:count]
        return np.where(nibbles >= 8, nibbles - 16, nibbles).astype(np.int8)


_TERNARY_ENCODE = {0: 0b00, 1: 0b01, -1: 0b10}
_TERNARY_RESERVED = 0b11


class PackedTernaryTensorData(PackedTensorData):
    """Four values from ``{-1, 0, 1}`` per byte."""

    DTYPE = DType.TERNARY

    def _read(self, flat: int) -> int:
        bit = (flat * 2) % 8
        code = (int(self._buffer[(flat * 2) // 8]) >> bit) & 0b11
        if code == _TERNARY_RESERVED:
            raise ValueRangeError(code, self.DTYPE, f"reserved bit pattern at flat index {flat}")
        return -1 if code == 0b10 else code

    def _write(self, flat: int, value: int) -> None:
        bit = (flat * 2) % 8
        index = (flat * 2) // 8
        mask = 0b11 << bit
        byte = int(self._buffer[index])
        self._buffer[index] = (byte & ~mask & 0xFF) | (_TERNARY_ENCODE[value] << bit)

    @staticmethod
    def _pack(values: np.ndarray) -> np.ndarray:
        codes = np.where(values < 0, 0b10, values).astype(np.uint8)
        pad = (-codes.size) % 4
        if pad:
            codes = np.append(codes, np.zeros(pad, dtype=np.uint8))
        codes = codes.reshape(-1, 4)
        return (codes[:, 0] | (codes[:, 1] << 2) | (codes[:, 2] << 4) | (codes[:, 3] << 6)).astype(
            np.uint8
        )

    @staticmethod
    def _unpack(buffer: np.ndarray, count: int) -> np.ndarray:
        codes = np.stack([(buffer >> shift) & 0b11 for shift in (0, 2, 4, 6)], axis=1).reshape(-1)
        codes = codes[:count]
        if (codes == _TERNARY_RESERVED).any():
            flat = int(np.argmax(codes == _TERNARY_RESERVED))
            raise ValueRangeError(
                _TERNARY_RESERVED, DType.TERNARY, f"reserved bit pattern at flat index {flat}"
            )
        return np.where(codes == 0b10, -1, codes).astype(np.int8)
