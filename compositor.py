"""Flattens a layer stack into a single RGBA buffer."""

import numpy as np

from color_model import blend_over_arrays
from pixel_buffer import PixelBuffer

# Opacity multiplier for non-active layers in dim-inactive display mode.
DIM_FACTOR = 0.4


def effective_alpha(alpha: np.ndarray, opacity: float) -> np.ndarray:
    """Scale per-pixel alpha by a layer opacity, rounding half up."""
    if opacity >= 1.0:
        return alpha.astype(np.int32)
    scaled = np.floor(alpha.astype(np.float64) * max(0.0, opacity) + 0.5)
    return scaled.astype(np.int32)


def blend_layer_onto(target: PixelBuffer, layer, opacity: float | None = None):
    """Composite ``layer`` over ``target`` in place.

    Invisible layers are skipped. ``opacity`` defaults to the layer's own.
    """
    if not layer.visible:
        return
    if opacity is None:
        opacity = layer.opacity
    src = layer.buffer.pixels
    alpha = effective_alpha(src[..., 3], opacity)
    target.pixels[:] = blend_over_arrays(src, target.pixels, alpha)


def composite(stack, dim_inactive: bool = False) -> PixelBuffer:
    """Flatten ``stack`` bottom to top into a new buffer.

    The stack is never modified. With ``dim_inactive`` every layer except the
    active one is drawn at ``DIM_FACTOR`` times its opacity.
    """
    out = PixelBuffer(stack.width, stack.height)
    for index, layer in enumerate(stack.layers):
        if not layer.visible:
            continue
        opacity = layer.opacity
        if dim_inactive and index != stack.active_index:
            opacity *= DIM_FACTOR
        blend_layer_onto(out, layer, opacity)
    return out
