# frontend/viewer_panel.py
import asyncio
import logging
import os
import sys

import altair as alt
import numpy as np
import pandas as pd
import streamlit as st

# ---------- local modules ----------
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from heatlens.analysis import DISEASE_CLASSES, luminance_grid, normalize_probabilities, reuse_or_build
from heatlens.compositing import CompositingMode
from heatlens.config import SYNTHETIC_GRID_SIZE, DisplayBounds
from heatlens.controller import OverlayController
from heatlens.errors import HeatlensError
from heatlens.grid import grid_from_cam
from heatlens.synthetic import generate

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("viewer_panel")

MODE_LABELS = {
    CompositingMode.PIXEL_ADDITIVE_BLEND: "Pixel blend",
    CompositingMode.RADIAL_GRADIENT_HALO: "Gradient halo",
    CompositingMode.SINGLE_HOTSPOT_HIGHLIGHT: "Single hotspot",
}
GRID_SOURCES = ["Synthetic (demo)", "Image luminance", "Upload .npy"]

# ---------- page setup ----------
st.set_page_config(page_title="Heatlens – Overlay viewer", layout="wide", page_icon="🩻")

st.markdown(
    """
<style>
#MainMenu {visibility: hidden;}
footer {visibility: hidden;}

.badge { display:inline-block; padding:2px 10px; border-radius:999px; font-size:13px; font-weight:600; }
.badge-on { background:#FEF2F2; color:#DC2626; border:1px solid #FECACA; }
.badge-off { background:#F3F4F6; color:#6B7280; border:1px solid #E5E7EB; }
.badge-demo { background:#FFFBEB; color:#92400E; border:1px solid #FDE68A; }
</style>
""",
    unsafe_allow_html=True,
)

st.title("Overlay viewer")

# ---------- session ----------
if "controller" not in st.session_state:
    st.session_state.controller = OverlayController(DisplayBounds(640, 640))
    st.session_state.image_key = None
    st.session_state.grid_key = None
ctl: OverlayController = st.session_state.controller

left, right = st.columns([2.2, 1.3], gap="large")

# ===================== RIGHT: inputs =====================
with right:
    uploaded = st.file_uploader("Image (JPG / PNG)", type=["jpg", "jpeg", "png"])

    st.markdown("#### Class scores")
    raw = [st.slider(c.replace("_", " ").capitalize(), 0.0, 1.0, 0.25, 0.01, key=f"score_{c}")
           for c in DISEASE_CLASSES]
    probabilities = normalize_probabilities(raw)

    grid_source = st.selectbox("Heat grid", GRID_SOURCES, index=0)
    npy = None
    if grid_source == "Upload .npy":
        npy = st.file_uploader("Heat grid (.npy)", type=["npy"])

    mode = st.selectbox("Overlay style", list(MODE_LABELS), format_func=MODE_LABELS.get)
    show = st.toggle("Show abnormality heatmap", value=ctl.state.visible)

# ---------- image: decode once per upload ----------
if uploaded is not None and st.session_state.image_key != uploaded.file_id:
    try:
        asyncio.run(ctl.load(uploaded.getvalue()))
        st.session_state.image_key = uploaded.file_id
        st.session_state.grid_key = None
    except HeatlensError as exc:
        logger.error("upload rejected: %s", exc)
        st.error(f"Could not read the image: {exc}")

# ---------- grid ----------
grid_key = (grid_source, getattr(npy, "file_id", None), st.session_state.image_key)
if st.session_state.grid_key != grid_key:
    try:
        if grid_source == "Image luminance" and ctl.base is not None:
            ctl.set_grid(luminance_grid(ctl.base, cells=SYNTHETIC_GRID_SIZE))
        elif grid_source == "Upload .npy" and npy is not None:
            ctl.set_grid(grid_from_cam(np.load(npy)))
        else:
            ctl.set_grid(generate(SYNTHETIC_GRID_SIZE, SYNTHETIC_GRID_SIZE))
        st.session_state.grid_key = grid_key
    except (HeatlensError, ValueError) as exc:
        st.error(f"Could not use the heat grid: {exc}")

# same scores and grid keep the same analysis id across reruns
result = None
if ctl.grid is not None:
    result = reuse_or_build(st.session_state.get("analysis"), probabilities, ctl.grid)
st.session_state.analysis = result

# ---------- state: one re-render from the clean image, only when something changed ----------
changes = {"mode": mode, "visible": show}
if result is not None:
    changes["probability"] = result.confidence
ctl.update(**changes)

# ===================== LEFT: raster =====================
with left:
    if ctl.rendered is None:
        st.info("Upload an image to start.")
    else:
        if ctl.overlay_active:
            st.markdown('<span class="badge badge-on">Analysis Overlay Active</span>', unsafe_allow_html=True)
        elif show:
            st.markdown(
                f'<span class="badge badge-off">Confidence below {ctl.settings.threshold:.0%}, overlay hidden</span>',
                unsafe_allow_html=True,
            )
        if ctl.grid is not None and not ctl.grid.provenance.diagnostic:
            st.markdown('<span class="badge badge-demo">Demo heat grid, not a model output</span>',
                        unsafe_allow_html=True)
        st.image(ctl.rendered.to_pil(), use_container_width=True)

    if result is not None:
        label, p = result.top_finding()
        st.markdown(f"**Top finding:** {label.replace('_', ' ')} ({p:.1%})")
        st.caption(result.explanations.get(label, ""))

        df = pd.DataFrame({"class": list(probabilities), "probability": list(probabilities.values())})
        chart = (
            alt.Chart(df)
            .mark_bar()
            .encode(
                x=alt.X("class:N", title=None, sort=None),
                y=alt.Y("probability:Q", title="Probability", scale=alt.Scale(domain=[0, 1])),
                tooltip=[alt.Tooltip("class:N"), alt.Tooltip("probability:Q", format=".1%")],
                color=alt.value("#2563EB"),
            )
            .properties(height=220)
        )
        st.altair_chart(chart, use_container_width=True)

st.caption("Not a medical device. The overlay is a visual aid and does not replace a clinician.")
