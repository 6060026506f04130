import cv2
import numpy as np
import pytest

from epigeo.geometry import (
    Correspondence,
    Keypoint,
    compute_fundamental_matrix,
    epipolar_distance,
    find_epipoles_from_f,
    find_f_from_calibrated_stereo,
    find_f_from_words,
)


def _pairs(x1, x2):
    return [
        Correspondence(i, Keypoint(float(a[0]), float(a[1]), i), Keypoint(float(b[0]), float(b[1]), i))
        for i, (a, b) in enumerate(zip(x1, x2))
    ]


def test_ransac_recovers_f_with_noise_and_outliers(scene):
    rng = np.random.default_rng(11)
    n = len(scene.x1)
    x1 = scene.x1 + rng.normal(0.0, 0.5, size=scene.x1.shape)
    x2 = scene.x2 + rng.normal(0.0, 0.5, size=scene.x2.shape)

    outlier_fraction = 0.2
    outliers = rng.choice(n, size=int(outlier_fraction * n), replace=False)
    x2[outliers] = rng.uniform([0.0, 0.0], [640.0, 480.0], size=(len(outliers), 2))
    is_outlier = np.zeros(n, dtype=bool)
    is_outlier[outliers] = True

    thresh = 3.0
    res = find_f_from_words(_pairs(x1, x2), ransac_thresh_px=thresh, ransac_confidence=0.99)

    assert res.found
    assert res.F.shape == (3, 3) and res.F.dtype == np.float64
    assert res.inlier_mask.shape == (n,)
    assert res.num_inliers >= 0.95 * (1.0 - outlier_fraction) * n
    assert np.sum(res.inlier_mask & is_outlier) <= 4

    kept = res.inlier_mask & ~is_outlier
    dists = [epipolar_distance(a, b, res.F) for a, b in zip(x1[kept], x2[kept])]
    assert max(dists) < thresh


def test_too_few_correspondences_is_not_found(scene):
    res = find_f_from_words(_pairs(scene.x1[:5], scene.x2[:5]))

    assert not res.found
    assert np.all(res.F == 0.0)
    assert res.inlier_mask.shape == (5,)
    assert res.num_inliers == 0


def test_empty_correspondences():
    res = find_f_from_words([])
    assert not res.found
    assert res.inlier_mask.shape == (0,)


@pytest.mark.parametrize("ret", [
    (None, None),
    (np.ones((9, 3)), np.ones((20, 1), np.uint8)),
    (np.zeros((3, 3)), np.ones((20, 1), np.uint8)),
])
def test_degenerate_opencv_results_map_to_zero_f(scene, monkeypatch, ret):
    monkeypatch.setattr(cv2, "findFundamentalMat", lambda *a, **k: ret)

    res = find_f_from_words(_pairs(scene.x1[:20], scene.x2[:20]))

    assert not res.found
    assert np.all(res.F == 0.0)
    assert res.num_inliers == 0


def test_opencv_error_maps_to_zero_f(scene, monkeypatch):
    def boom(*args, **kwargs):
        raise cv2.error("degenerate")

    monkeypatch.setattr(cv2, "findFundamentalMat", boom)

    res = find_f_from_words(_pairs(scene.x1[:20], scene.x2[:20]))
    assert not res.found


def test_calibrated_stereo_horizontal_baseline():
    fx, fy, cx, cy = 500.0, 510.0, 320.0, 240.0
    F = find_f_from_calibrated_stereo(fx, fy, cx, cy, -fx * 0.12, 0.0)

    rng = np.random.default_rng(5)
    for _ in range(20):
        u, v = rng.uniform(0, 640), rng.uniform(0, 480)
        d = rng.uniform(1, 60)
        p1 = np.array([u, v, 1.0])
        p2 = np.array([u - d, v, 1.0])
        assert abs(p2 @ F @ p1) < 1e-9


def test_calibrated_stereo_general_baseline():
    fx, fy, cx, cy = 450.0, 460.0, 300.0, 250.0
    tx, ty = -fx * 0.1, -fy * 0.03
    F = find_f_from_calibrated_stereo(fx, fy, cx, cy, tx, ty)

    K = np.array([[fx, 0, cx], [0, fy, cy], [0, 0, 1.0]])
    b = np.array([tx / -fx, ty / -fy, 0.0])
    rng = np.random.default_rng(9)
    X = rng.uniform([-1.0, -1.0, 2.0], [1.0, 1.0, 6.0], size=(30, 3))
    for Xi in X:
        p1 = K @ Xi
        p2 = K @ (Xi + b)
        p1 /= p1[2]
        p2 /= p2[2]
        assert abs(p2 @ F @ p1) < 1e-9


def test_calibrated_stereo_is_idempotent():
    args = (500.0, 500.0, 320.0, 240.0, -60.0, 0.0)
    np.testing.assert_array_equal(find_f_from_calibrated_stereo(*args), find_f_from_calibrated_stereo(*args))


def test_calibrated_stereo_zero_focal_returns_zero():
    F = find_f_from_calibrated_stereo(0.0, 500.0, 320.0, 240.0, -60.0, 0.0)
    assert F.shape == (3, 3)
    assert np.all(F == 0.0)


def test_epipoles_span_null_spaces(scene):
    F = compute_fundamental_matrix(scene.K, np.eye(3), np.zeros(3), scene.K, scene.R, scene.t)

    e1, e2 = find_epipoles_from_f(F)

    np.testing.assert_allclose(F @ e1, 0.0, atol=1e-10)
    np.testing.assert_allclose(F.T @ e2, 0.0, atol=1e-10)
    # epipole in image 2 is the image of camera 1's centre: K t
    Kt = scene.K @ scene.t
    np.testing.assert_allclose(np.cross(e2, Kt / np.linalg.norm(Kt)), 0.0, atol=1e-8)


@pytest.mark.parametrize("bad", [
    np.eye(3, dtype=np.float32),
    np.eye(3, dtype=np.int64),
    np.zeros((3, 4)),
])
def test_epipoles_reject_invalid_matrix(bad):
    assert find_epipoles_from_f(bad) is None


def test_compute_fundamental_matrix_satisfies_constraint(scene):
    F = compute_fundamental_matrix(scene.K, np.eye(3), np.zeros(3), scene.K, scene.R, scene.t)

    assert np.linalg.norm(F) == pytest.approx(1.0)
    for a, b in zip(scene.x1[:10], scene.x2[:10]):
        assert epipolar_distance(a, b, F) < 1e-6
