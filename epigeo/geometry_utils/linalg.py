"""
Dense linear-algebra back ends.

The geometry routines never call an SVD or least-squares solver directly;
they take a provider exposing `svd`, `lstsq` and `inv` (numpy by default,
OpenCV as an alternative).
"""

from __future__ import annotations
from typing import Optional, Protocol, Tuple

import cv2
import numpy as np


class LinearAlgebra(Protocol):
    def svd(self, a: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Full SVD a = U @ diag(S) @ Vt. Returns (U, S, Vt)."""
        ...

    def lstsq(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Minimum-norm least-squares solution of A x = b."""
        ...

    def inv(self, a: np.ndarray) -> np.ndarray:
        """Inverse of a square matrix. Raises np.linalg.LinAlgError if singular."""
        ...


class NumpyLinearAlgebra:
    def svd(self, a):
        U, S, Vt = np.linalg.svd(np.asarray(a, dtype=np.float64))
        return U, S, Vt

    def lstsq(self, A, b):
        x, _res, _rank, _sv = np.linalg.lstsq(
            np.asarray(A, dtype=np.float64),
            np.asarray(b, dtype=np.float64),
            rcond=None,
        )
        return x

    def inv(self, a):
        return np.linalg.inv(np.asarray(a, dtype=np.float64))


class OpenCVLinearAlgebra:
    """cv2 back end: SVDecomp, solve(DECOMP_SVD), invert(DECOMP_LU)."""

    def svd(self, a):
        w, u, vt = cv2.SVDecomp(np.asarray(a, dtype=np.float64), flags=cv2.SVD_FULL_UV)
        return u, w.ravel(), vt

    def lstsq(self, A, b):
        b = np.asarray(b, dtype=np.float64)
        _ok, x = cv2.solve(np.asarray(A, dtype=np.float64), b.reshape(len(b), -1), flags=cv2.DECOMP_SVD)
        return x.reshape(-1) if b.ndim == 1 else x

    def inv(self, a):
        ok, out = cv2.invert(np.asarray(a, dtype=np.float64), flags=cv2.DECOMP_LU)
        if not ok:
            raise np.linalg.LinAlgError("Singular matrix")
        return out


DEFAULT_LINALG = NumpyLinearAlgebra()


def get_linalg(linalg: Optional[LinearAlgebra] = None) -> LinearAlgebra:
    return DEFAULT_LINALG if linalg is None else linalg
