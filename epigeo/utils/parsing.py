from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from epigeo.geometry_utils.correspondences import Keypoint


def extract_floats(text: str) -> List[float]:
    """
    Extract floats/ints/scientific-notation numbers from arbitrary text.
    """
    pattern = r"[-+]?(?:\d*\.\d+|\d+)(?:[eE][-+]?\d+)?"
    return [float(x) for x in re.findall(pattern, text)]


def load_data(path: Union[str, Path]) -> Any:
    """
    Load a file into a Python object based on file extension.

    - .json -> parsed dict/list
    - .yaml/.yml -> parsed dict/list (requires PyYAML)
    - otherwise -> raw text (str)

    This function is domain-neutral: it does NOT interpret the contents.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suf = path.suffix.lower()

    if suf == ".json":
        return json.loads(path.read_text(encoding="utf-8", errors="ignore"))

    if suf in (".yaml", ".yml"):
        try:
            import yaml  # type: ignore
        except ImportError as e:
            raise ImportError(
                "YAML support requires PyYAML. Install with: pip install pyyaml"
            ) from e
        return yaml.safe_load(path.read_text(encoding="utf-8", errors="ignore"))

    # default: return raw text
    return path.read_text(encoding="utf-8", errors="ignore")


def read_keypoints(path: Union[str, Path]) -> Tuple[Optional[int], List[Keypoint]]:
    """
    Read labeled keypoints from .json/.yaml/.txt.

    Structured files look like {"id": 3, "keypoints": [[label, x, y], ...]};
    a bare list of [label, x, y] rows is accepted too. Text files hold one
    "label x y" triple per line (any separators).

    Returns:
      (signature id or None, keypoints in file order)
    """
    obj = load_data(path)

    sig_id: Optional[int] = None
    if isinstance(obj, str):
        rows = []
        for line in obj.splitlines():
            vals = extract_floats(line)
            if not vals:
                continue
            if len(vals) != 3:
                raise ValueError(f"Expected 'label x y' per line, got {line!r} in {path}")
            rows.append(vals)
    elif isinstance(obj, dict):
        if "keypoints" not in obj:
            raise ValueError(f"Missing 'keypoints' entry in {path}")
        rows = obj["keypoints"]
        if obj.get("id") is not None:
            sig_id = int(obj["id"])
    elif isinstance(obj, list):
        rows = obj
    else:
        raise ValueError(f"Unsupported keypoint file content in {path}")

    kpts: List[Keypoint] = []
    for row in rows:
        if len(row) != 3:
            raise ValueError(f"Keypoint rows must be [label, x, y], got {row!r}")
        label, x, y = row
        kpts.append(Keypoint(float(x), float(y), int(label)))
    return sig_id, kpts
