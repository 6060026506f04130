import numpy as np

# ----------------------------
# Small numeric helpers
# ----------------------------
_EPS_W = 1e-12


def _is_finite_xyz(X: np.ndarray) -> np.ndarray:
    """Return boolean mask of rows of X that are finite."""
    X = np.asarray(X)
    if X.ndim != 2 or X.shape[1] != 3:
        raise ValueError(f"Expected (N,3) array, got {X.shape}")
    return np.isfinite(X).all(axis=1)


def homogeneous(X: np.ndarray) -> np.ndarray:
    """(N,3) -> (N,4) with a trailing column of ones."""
    X = np.asarray(X, dtype=np.float64)
    return np.hstack([X, np.ones((X.shape[0], 1), np.float64)])


def depth_in_camera(P: np.ndarray, X: np.ndarray) -> np.ndarray:
    """
    Third homogeneous coordinate of P @ [X; 1] for each point.

    For P = [R | t] this is the camera-frame depth; its sign is what the
    cheirality test looks at.
    """
    P = np.asarray(P, dtype=np.float64)
    X = np.atleast_2d(np.asarray(X, dtype=np.float64))
    return homogeneous(X) @ P[2, :]


def project_points(X: np.ndarray, P: np.ndarray) -> np.ndarray:
    """
    Project 3D points through a 3x4 projection matrix.

    Returns:
      x: (N,2) float64. If a point is non-finite or projects to w ~ 0, its projection is NaN.
    """
    X = np.asarray(X, dtype=np.float64)
    P = np.asarray(P, dtype=np.float64)

    if X.ndim != 2 or X.shape[1] != 3:
        raise ValueError(f"X must be (N,3). Got {X.shape}")
    if P.shape != (3, 4):
        raise ValueError(f"P must be (3,4). Got {P.shape}")

    x_pix = np.full((X.shape[0], 2), np.nan, dtype=np.float64)

    finite = _is_finite_xyz(X) & np.isfinite(P).all()
    if not np.any(finite):
        return x_pix

    xh = P @ homogeneous(X[finite]).T  # (3,Nf)
    w = xh[2, :]
    good_w = np.isfinite(w) & (np.abs(w) > _EPS_W)

    if np.any(good_w):
        x_pix[np.where(finite)[0][good_w]] = (xh[:2, good_w] / w[good_w][None, :]).T

    return x_pix


def reprojection_errors(X: np.ndarray, pts_obs: np.ndarray, P: np.ndarray) -> np.ndarray:
    """
    Pixel reprojection error per point.

    Returns:
      err: (N,) float64. Non-finite projections yield +inf error.
    """
    x_proj = project_points(X, P)          # (N,2) with NaNs for invalid
    pts_obs = np.asarray(pts_obs, dtype=np.float64).reshape(-1, 2)

    err = np.full((x_proj.shape[0],), np.inf, dtype=np.float64)
    good = np.isfinite(x_proj).all(axis=1) & np.isfinite(pts_obs).all(axis=1)
    if np.any(good):
        err[good] = np.linalg.norm(x_proj[good] - pts_obs[good], axis=1)
    return err
