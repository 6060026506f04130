from types import SimpleNamespace

import numpy as np
import pytest

from epigeo.geometry import Keypoint, projection_matrix


def rot_y(deg: float) -> np.ndarray:
    a = np.deg2rad(deg)
    c, s = np.cos(a), np.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]], dtype=np.float64)


def project(K: np.ndarray, R: np.ndarray, t: np.ndarray, X: np.ndarray) -> np.ndarray:
    Xc = (R @ X.T + np.asarray(t, np.float64).reshape(3, 1))
    x = K @ Xc
    return (x[:2] / x[2:3]).T


@pytest.fixture
def K():
    return np.array([
        [500.0, 0.0, 320.0],
        [0.0, 500.0, 240.0],
        [0.0, 0.0, 1.0],
    ])


@pytest.fixture
def scene(K):
    """Points 4-8 units in front of camera 1; camera 2 rotated 5 deg about y and shifted."""
    rng = np.random.default_rng(7)
    X = rng.uniform([-2.0, -1.5, 4.0], [2.0, 1.5, 8.0], size=(100, 3))
    R = rot_y(5.0)
    t = np.array([-1.0, 0.0, 0.1])
    x1 = project(K, np.eye(3), np.zeros(3), X)
    x2 = project(K, R, t, X)
    P = projection_matrix(K, np.eye(3), np.zeros(3))
    P1 = projection_matrix(K, R, t)
    return SimpleNamespace(X=X, R=R, t=t, x1=x1, x2=x2, P=P, P1=P1, K=K)


@pytest.fixture
def stereo_keypoints():
    """
    Keypoints of 12 labels seen by a camera translating along x (rectified
    pair): same row in both views, integer disparity. Returns (kpts_a, kpts_b).
    """
    xs = [100, 150, 210, 260, 300, 340, 380, 420, 470, 520, 560, 600]
    ys = [40, 300, 120, 410, 75, 220, 350, 180, 260, 95, 330, 150]
    ds = [12, 30, 7, 22, 41, 15, 9, 27, 35, 18, 11, 25]
    kpts_a = [Keypoint(float(x), float(y), label) for label, (x, y) in enumerate(zip(xs, ys))]
    kpts_b = [Keypoint(float(x - d), float(y), label) for label, (x, y, d) in enumerate(zip(xs, ys, ds))]
    return kpts_a, kpts_b


@pytest.fixture
def normalized(scene):
    """The scene seen by calibrated cameras (K = I): (x1, x2) normalized image coordinates."""
    Xc2 = (scene.R @ scene.X.T).T + scene.t
    x1 = scene.X[:, :2] / scene.X[:, 2:3]
    x2 = Xc2[:, :2] / Xc2[:, 2:3]
    return x1, x2
