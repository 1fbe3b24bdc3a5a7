# heatlens/analysis.py
import datetime
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from .config import LUMINANCE_DRAW_SIZE
from .grid import HeatGrid, Provenance
from .raster import RasterBuffer

logger = logging.getLogger(__name__)

# === Classes ===
DISEASE_CLASSES = [
    "pancreatic_cancer",
    "chronic_pancreatitis",
    "pancreatic_cysts",
    "acute_pancreatitis",
]

DEFAULT_EXPLANATIONS = {
    "pancreatic_cancer":
        "Abnormal growth of cells in the pancreas. Indicators include specific tissue "
        "density patterns and structural changes visible in imaging.",
    "chronic_pancreatitis":
        "Persistent inflammation patterns and possible calcifications, seen as long-term "
        "changes in pancreatic tissue density and structure.",
    "pancreatic_cysts":
        "Fluid-filled structures within the pancreas; size, location and appearance "
        "inform the risk assessment.",
    "acute_pancreatitis":
        "Inflammation patterns and possible fluid collections in and around the pancreas "
        "indicative of acute inflammation.",
}


@dataclass(frozen=True)
class AnalysisResult:
    analysis_id: str
    timestamp: str
    probabilities: Dict[str, float]
    grid: HeatGrid
    explanations: Dict[str, str] = field(default_factory=dict)
    confidence: float = 0.0

    def top_finding(self) -> Tuple[str, float]:
        label = max(self.probabilities, key=self.probabilities.get)
        return label, self.probabilities[label]

    @property
    def diagnostic(self) -> bool:
        """False when the heat grid is only a stand-in."""
        return self.grid.provenance.diagnostic


# ---------- probabilities ----------

def normalize_probabilities(raw: Union[Sequence[float], Mapping[str, float]],
                            classes: Sequence[str] = DISEASE_CLASSES) -> Dict[str, float]:
    """
    Map raw scores onto ``classes`` in order and rescale them to sum to 1.

    Missing scores count as 0; an all-zero input becomes a uniform split.
    """
    if isinstance(raw, Mapping):
        scores = [float(raw.get(c, 0.0)) for c in classes]
    else:
        scores = [float(s) for s in list(raw)[:len(classes)]]
        scores += [0.0] * (len(classes) - len(scores))
    if any(s < 0 or np.isnan(s) for s in scores):
        raise ValueError(f"scores must be non-negative numbers, got {scores}")

    total = sum(scores)
    if total == 0:
        return {c: 1.0 / len(classes) for c in classes}
    return {c: s / total for c, s in zip(classes, scores)}


# ---------- grid producers ----------

def luminance_grid(image: Union[Image.Image, RasterBuffer], cells: Optional[int] = None,
                   draw_size: int = LUMINANCE_DRAW_SIZE) -> HeatGrid:
    """
    Mean RGB brightness of the image drawn at ``draw_size`` x ``draw_size``.

    With ``cells`` the map is block-averaged down to a cells x cells grid.
    Bright is not the same as suspicious: the grid is tagged LUMINANCE.
    """
    pil_img = image.to_pil() if isinstance(image, RasterBuffer) else image
    rgb = np.asarray(pil_img.convert("RGB").resize((draw_size, draw_size)), dtype=np.float32)
    intensity = rgb.sum(axis=2) / (3 * 255.0)
    if cells is not None:
        intensity = cv2.resize(intensity, (cells, cells), interpolation=cv2.INTER_AREA)
    return HeatGrid(intensity, Provenance.LUMINANCE)


def build_result(probabilities: Mapping[str, float], grid: HeatGrid,
                 explanations: Optional[Mapping[str, str]] = None) -> AnalysisResult:
    probabilities = dict(probabilities)
    if not probabilities:
        raise ValueError("at least one class probability is required")
    if explanations is None:
        explanations = {c: DEFAULT_EXPLANATIONS[c] for c in probabilities if c in DEFAULT_EXPLANATIONS}

    result = AnalysisResult(
        analysis_id=str(uuid.uuid4()),
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds"),
        probabilities=probabilities,
        grid=grid,
        explanations=dict(explanations),
        confidence=max(probabilities.values()),
    )
    if not result.diagnostic:
        logger.info("analysis %s uses a %s heat grid", result.analysis_id, grid.provenance.value)
    return result


def reuse_or_build(previous: Optional[AnalysisResult], probabilities: Mapping[str, float],
                   grid: HeatGrid) -> AnalysisResult:
    """Hand back ``previous`` while its inputs are unchanged, so one analysis keeps one id."""
    if previous is not None and previous.grid is grid and previous.probabilities == dict(probabilities):
        return previous
    return build_result(probabilities, grid)
