from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple

import numpy as np


__all__ = [
    "ParameterShape",
    "ParameterSet",
    "pack",
    "unpack",
    "unpack_like",
]


@dataclass(frozen=True)
class ParameterShape:
    """Layout of a structured parameter set.

    None marks an absent component; zero sizes are allowed and mean the
    component is present but empty.
    """

    vector_size: Optional[int] = None
    rows: Optional[int] = None
    cols: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.rows is None) != (self.cols is None):
            raise ValueError("rows and cols must be given together (or both None).")
        for label, n in (
            ("vector_size", self.vector_size),
            ("rows", self.rows),
            ("cols", self.cols),
        ):
            if n is not None and int(n) < 0:
                raise ValueError(f"{label} must be >= 0; got {n}.")
        if self.vector_size is None and self.rows is None:
            raise ValueError(
                "A parameter set needs a vector component, a matrix component, or both."
            )

    @property
    def has_vector(self) -> bool:
        return self.vector_size is not None

    @property
    def has_matrix(self) -> bool:
        return self.rows is not None

    @property
    def size(self) -> int:
        """Length of the flattened form."""
        n = int(self.vector_size or 0)
        if self.has_matrix:
            n += int(self.rows) * int(self.cols)  # type: ignore[arg-type]
        return n


@dataclass(frozen=True, eq=False)
class ParameterSet:
    """Structured parameters: an ordered vector and/or a rows x cols matrix.

    The flat form is the vector followed by the matrix in row-major order.
    """

    vector: Optional[np.ndarray] = None
    matrix: Optional[np.ndarray] = None
    names: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.vector is None and self.matrix is None:
            raise ValueError(
                "ParameterSet requires a vector component, a matrix component, or both."
            )
        if self.vector is not None:
            v = np.array(self.vector, dtype=float).reshape(-1)
            object.__setattr__(self, "vector", v)
        if self.matrix is not None:
            m = np.array(self.matrix, dtype=float)
            if m.ndim != 2:
                raise ValueError(f"matrix component must be 2D; got shape {m.shape}.")
            object.__setattr__(self, "matrix", m)
        object.__setattr__(self, "names", tuple(str(n) for n in self.names))

    @property
    def shape(self) -> ParameterShape:
        return ParameterShape(
            vector_size=None if self.vector is None else int(self.vector.shape[0]),
            rows=None if self.matrix is None else int(self.matrix.shape[0]),
            cols=None if self.matrix is None else int(self.matrix.shape[1]),
        )

    def pack(self) -> np.ndarray:
        return pack(self)

    def copy(self) -> "ParameterSet":
        return ParameterSet(
            vector=None if self.vector is None else self.vector.copy(),
            matrix=None if self.matrix is None else self.matrix.copy(),
            names=self.names,
        )

    def all_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.pack())))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterSet):
            return NotImplemented
        if self.shape != other.shape:
            return False
        if self.vector is not None and not np.array_equal(self.vector, other.vector):
            return False
        if self.matrix is not None and not np.array_equal(self.matrix, other.matrix):
            return False
        return True

    def __repr__(self) -> str:
        parts = []
        if self.vector is not None:
            parts.append(f"vector={self.vector.tolist()}")
        if self.matrix is not None:
            parts.append(f"matrix={self.matrix.tolist()}")
        if self.names:
            parts.append(f"names={self.names}")
        return "ParameterSet(" + ", ".join(parts) + ")"


def pack(params: ParameterSet) -> np.ndarray:
    """Flatten a ParameterSet: vector elements then matrix rows."""
    pieces = []
    if params.vector is not None:
        pieces.append(np.asarray(params.vector, dtype=float).reshape(-1))
    if params.matrix is not None:
        pieces.append(np.asarray(params.matrix, dtype=float).reshape(-1))
    if not pieces:
        raise ValueError("Cannot pack a parameter set with neither vector nor matrix.")
    return np.concatenate(pieces).astype(float, copy=False)


def unpack(
    flat: Any,
    vector_size: Optional[int],
    rows: Optional[int] = None,
    cols: Optional[int] = None,
    names: Sequence[str] = (),
) -> ParameterSet:
    """Inverse of pack() for the given layout.

    vector_size=None means no vector component; rows=cols=None means no
    matrix component. The flat length must equal the layout size exactly.
    """
    shape = ParameterShape(vector_size=vector_size, rows=rows, cols=cols)
    flat = np.asarray(flat, dtype=float).reshape(-1)
    if flat.shape[0] != shape.size:
        raise ValueError(
            f"Flat parameter vector has length {flat.shape[0]}, "
            f"but the layout {shape} needs {shape.size}."
        )

    vector = None
    matrix = None
    n = int(shape.vector_size or 0)
    if shape.has_vector:
        vector = flat[:n].copy()
    if shape.has_matrix:
        matrix = flat[n:].reshape((int(shape.rows), int(shape.cols))).copy()  # type: ignore[arg-type]
    return ParameterSet(vector=vector, matrix=matrix, names=tuple(names))


def unpack_like(flat: Any, shape: ParameterShape, names: Sequence[str] = ()) -> ParameterSet:
    """unpack() with a ParameterShape instead of separate sizes."""
    return unpack(flat, shape.vector_size, shape.rows, shape.cols, names=names)
