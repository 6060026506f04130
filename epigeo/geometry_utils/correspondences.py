from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, NamedTuple, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Keypoint:
    x: float
    y: float
    label: int = -1   # visual word id shared across views

    @property
    def pt(self) -> Tuple[float, float]:
        return (self.x, self.y)


# label -> keypoints carrying that label (a label may recur in one view)
Words = Mapping[int, Sequence[Keypoint]]


class Correspondence(NamedTuple):
    label: int
    kp_a: Keypoint
    kp_b: Keypoint


def words_from_keypoints(kpts: Iterable[Keypoint]) -> Dict[int, List[Keypoint]]:
    """Group keypoints by label. Within a label, input order is kept."""
    words: Dict[int, List[Keypoint]] = {}
    for kp in kpts:
        words.setdefault(int(kp.label), []).append(kp)
    return words


def _to_xy(kps) -> np.ndarray:
    # works for Keypoint and cv2.KeyPoint alike
    return np.array([kp.pt for kp in kps], dtype=np.float32).reshape(-1, 2)


def correspondences_to_points(pairs: Sequence[Correspondence]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split correspondences into two parallel (N,2) float32 arrays.
    Row i of both arrays belongs to pairs[i].
    """
    pts_a = _to_xy([c.kp_a for c in pairs])
    pts_b = _to_xy([c.kp_b for c in pairs])
    return pts_a, pts_b


def find_pairs_unique(words_a: Words, words_b: Words) -> Tuple[List[Correspondence], int]:
    """
    Pair labels that occur exactly once in both views.

    Labels duplicated in both views are not paired (the association would be
    a guess) but min(|A|, |B|) is still added to the pairable count.

    Example:
      A labels = [1 2 3 4 6 6], B labels = [1 1 2 4 5 6 6]
      pairs = [(2,2) (4,4)], count = 4

    Returns:
      pairs: correspondences in ascending label order
      count: number of theoretically pairable keypoints (reporting only)
    """
    pairs: List[Correspondence] = []
    count = 0
    for label in sorted(words_a):
        pts_a = words_a[label]
        pts_b = words_b.get(label, ())
        if len(pts_a) == 1 and len(pts_b) == 1:
            pairs.append(Correspondence(label, pts_a[0], pts_b[0]))
            count += 1
        elif len(pts_a) > 1 and len(pts_b) > 1:
            count += min(len(pts_a), len(pts_b))
    return pairs, count


def find_pairs_all(words_a: Words, words_b: Words) -> Tuple[List[Correspondence], int]:
    """
    Pair every keypoint of a label in A with every keypoint of that label in B.

    Example:
      A labels = [1 2 3 4 6 6], B labels = [1 1 2 4 5 6 6]
      pairs = [(1,1a) (1,1b) (2,2) (4,4) (6a,6a) (6a,6b) (6b,6a) (6b,6b)], count = 5
    """
    pairs: List[Correspondence] = []
    count = 0
    for label in sorted(words_a):
        pts_a = words_a[label]
        pts_b = words_b.get(label, ())
        count += min(len(pts_a), len(pts_b))
        for kp_a in pts_a:
            for kp_b in pts_b:
                pairs.append(Correspondence(label, kp_a, kp_b))
    return pairs, count


def find_pairs(words_a: Words, words_b: Words) -> Tuple[List[Correspondence], int]:
    """
    Sequential pairing: within a label, the i-th keypoint of A goes with the
    i-th keypoint of B. Only meaningful when duplicates align positionally.

    Example:
      A labels = [1 2 3 4 6 6], B labels = [1 1 2 4 5 6 6]
      pairs = [(1,1a) (2,2) (4,4) (6a,6a) (6b,6b)], count = 5
    """
    pairs: List[Correspondence] = []
    for label in sorted(words_a):
        for kp_a, kp_b in zip(words_a[label], words_b.get(label, ())):
            pairs.append(Correspondence(label, kp_a, kp_b))
    return pairs, len(pairs)
