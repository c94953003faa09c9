import numpy as np

from compositor import DIM_FACTOR, composite
from layers import LayerStack
from pixel_buffer import PixelBuffer


def _random_opaque(width, height, seed=0):
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    arr[..., 3] = 255
    return PixelBuffer.from_array(arr)


def test_single_opaque_layer_composites_to_itself():
    stack = LayerStack(5, 4)
    stack.active.buffer = _random_opaque(5, 4)
    assert composite(stack, False) == stack.active.buffer


def test_single_translucent_layer_over_nothing_is_unchanged():
    stack = LayerStack(2, 1)
    stack.active.buffer.set(0, 0, (10, 20, 30, 77))
    out = composite(stack)
    assert out.get(0, 0) == (10, 20, 30, 77)
    assert out.get(1, 0) == (0, 0, 0, 0)


def test_empty_stack_output_is_transparent():
    out = composite(LayerStack(3, 3))
    assert not out.pixels.any()


def test_hidden_layers_are_skipped():
    stack = LayerStack(1, 1)
    stack.active.buffer.fill((255, 0, 0, 255))
    top = stack.add_layer()
    top.buffer.fill((0, 255, 0, 255))
    top.visible = False
    assert composite(stack).get(0, 0) == (255, 0, 0, 255)


def test_upper_layer_wins_and_opacity_scales_alpha():
    stack = LayerStack(1, 1)
    stack.active.buffer.fill((255, 0, 0, 255))
    top = stack.add_layer()
    top.buffer.fill((0, 0, 255, 255))
    assert composite(stack).get(0, 0) == (0, 0, 255, 255)

    top.opacity = 0.5
    # effective alpha floor(255 * 0.5 + 0.5) = 128; dst weight 255*127//255 = 127
    assert composite(stack).get(0, 0) == (127, 0, 128, 255)


def test_dim_inactive_only_dims_other_layers():
    stack = LayerStack(1, 1)
    stack.active.buffer.fill((255, 0, 0, 255))
    stack.add_layer()
    stack.active.buffer.fill((0, 0, 0, 0))
    out = composite(stack, dim_inactive=True)
    expected_alpha = int(255 * DIM_FACTOR + 0.5)
    assert out.get(0, 0) == (255, 0, 0, expected_alpha)

    stack.set_active(0)
    assert composite(stack, dim_inactive=True).get(0, 0) == (255, 0, 0, 255)


def test_composite_does_not_mutate_stack():
    stack = LayerStack(3, 3)
    stack.active.buffer = _random_opaque(3, 3, seed=1)
    top = stack.add_layer()
    top.buffer.set(1, 1, (1, 2, 3, 100))
    top.opacity = 0.3
    before = stack.clone()
    composite(stack, dim_inactive=True)
    assert stack == before
