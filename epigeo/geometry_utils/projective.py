from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from .linalg import LinearAlgebra, get_linalg

logger = logging.getLogger(__name__)


def projection_matrix(K: np.ndarray, R: np.ndarray, t: np.ndarray) -> Optional[np.ndarray]:
    """
    P = K [R | t] for a camera with world->camera extrinsics Xc = R X + t.

    Returns:
      P: (3,4) float64, or None if K or R is not 3x3 or t has not 3 entries.
    """
    K = np.asarray(K, np.float64)
    R = np.asarray(R, np.float64)
    t = np.asarray(t, np.float64)
    if K.shape != (3, 3) or R.shape != (3, 3) or t.size != 3:
        logger.error(f"projection_matrix: K {K.shape}, R {R.shape}, t {t.shape}")
        return None
    return K @ np.hstack([R, t.reshape(3, 1)])


def reference_projection() -> np.ndarray:
    """P0 = [I | 0], the camera every recovered pose is expressed against."""
    return np.hstack([np.eye(3, dtype=np.float64), np.zeros((3, 1), np.float64)])


def skew(v: np.ndarray) -> np.ndarray:
    """Cross-product matrix [v]x, so that skew(a) @ b == np.cross(a, b)."""
    v = np.asarray(v, np.float64).reshape(3)
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ], dtype=np.float64)


def camera_center(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Compute camera center in world coordinates from extrinsics R and t.
    Args:
        R: (3,3) rotation matrix
        t: (3,1) translation vector
    Returns:
        C: (3,) camera center in world coordinates"""
    # world->cam: Xc = R X + t  => C = -R^T t
    R = np.asarray(R, np.float64)
    t = np.asarray(t, np.float64).reshape(3, 1)
    return (-R.T @ t).reshape(3)


def find_rt_from_p(
    P: np.ndarray,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Factor a 3x4 projection matrix into (R, t).

    Convention: R = -inv(P[:, :3]) and t = R @ P[:, 3]. For a proper rotation
    block this gives R = -P3^T and t = the camera centre, which is not the
    usual [R | t] split.

    Returns:
      (R (3,3), t (3,1)) or None if P is not 3x4 or its left block is singular.
    """
    P = np.asarray(P, np.float64)
    if P.shape != (3, 4):
        logger.error(f"P must be (3,4), got {P.shape}")
        return None

    try:
        R = -get_linalg(linalg).inv(P[:, :3])
    except np.linalg.LinAlgError:
        logger.error("Left 3x3 block of P is singular")
        return None

    t = R @ P[:, 3:4]
    return R, t
