import json

import pytest

from epigeo.cli import main
from epigeo.utils.parsing import read_keypoints


@pytest.fixture
def sig_files(tmp_path, stereo_keypoints):
    kpts_a, kpts_b = stereo_keypoints
    paths = []
    for sig_id, kpts in ((12, kpts_a), (347, kpts_b)):
        path = tmp_path / f"view_{sig_id}.json"
        path.write_text(json.dumps({"id": sig_id, "keypoints": [[kp.label, kp.x, kp.y] for kp in kpts]}))
        paths.append(str(path))
    return paths


def test_accepts_consistent_pair(sig_files):
    a, b = sig_files
    assert main(["--sig_a", a, "--sig_b", b, "--log_level", "ERROR"]) == 0


def test_rejects_with_high_threshold(sig_files):
    a, b = sig_files
    assert main(["--sig_a", a, "--sig_b", b, "--match_count_min", "20", "--log_level", "ERROR"]) == 1


def test_config_file_threshold(sig_files, tmp_path):
    a, b = sig_files
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("verification:\n  match_count_min: 13\nlog_level: ERROR\n")

    assert main(["--sig_a", a, "--sig_b", b, "--config", str(cfg)]) == 1
    # command line overrides the file
    assert main(["--sig_a", a, "--sig_b", b, "--config", str(cfg), "--match_count_min", "12"]) == 0


def test_triangulate_runs(sig_files):
    a, b = sig_files
    assert main(["--sig_a", a, "--sig_b", b, "--triangulate", "--log_level", "ERROR"]) == 0


def test_triangulate_skipped_without_fundamental(tmp_path):
    paths = []
    for sig_id in (1, 2):
        path = tmp_path / f"empty_{sig_id}.json"
        path.write_text(json.dumps({"id": sig_id, "keypoints": []}))
        paths.append(str(path))

    argv = ["--sig_a", paths[0], "--sig_b", paths[1], "--match_count_min", "0", "--triangulate", "--log_level", "ERROR"]
    assert main(argv) == 0


def test_read_keypoints_formats(tmp_path):
    txt = tmp_path / "kpts.txt"
    txt.write_text("# label x y\n1 10 20\n2, 30.5, 40\n")
    lst = tmp_path / "kpts.json"
    lst.write_text("[[1, 10, 20], [2, 30.5, 40]]")

    for path in (txt, lst):
        sig_id, kpts = read_keypoints(path)
        assert sig_id is None
        assert [(kp.label, kp.x, kp.y) for kp in kpts] == [(1, 10.0, 20.0), (2, 30.5, 40.0)]


@pytest.mark.parametrize("content", ["1 2\n", '{"id": 1}', "[[1, 2]]"])
def test_read_keypoints_malformed(tmp_path, content):
    suffix = ".txt" if content[0] not in "[{" else ".json"
    path = tmp_path / f"bad{suffix}"
    path.write_text(content)

    with pytest.raises(ValueError):
        read_keypoints(path)
