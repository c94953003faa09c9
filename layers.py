"""Layer and LayerStack: the editable document model."""

import logging

from compositor import blend_layer_onto
from errors import InvalidLayerOperation, LastLayerDeletion
from pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


class Layer:
    """A named pixel buffer with visibility and opacity metadata."""

    def __init__(self, width: int, height: int, name: str):
        self.name = name
        self.visible = True
        self.opacity = 1.0  # 0.0 to 1.0
        self.buffer = PixelBuffer(width, height)

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    def clone(self) -> "Layer":
        """Deep copy; the clone never shares pixel storage with the original."""
        layer = Layer.__new__(Layer)
        layer.name = self.name
        layer.visible = self.visible
        layer.opacity = self.opacity
        layer.buffer = self.buffer.copy()
        return layer

    def __eq__(self, other) -> bool:
        if not isinstance(other, Layer):
            return NotImplemented
        return (self.name == other.name and self.visible == other.visible
                and self.opacity == other.opacity and self.buffer == other.buffer)

    def __repr__(self):
        return f"Layer('{self.name}', visible={self.visible}, opacity={self.opacity:.2f})"


class LayerStack:
    """Ordered layers, bottom to top by index. Never empty.

    ``active_index`` always points at an existing layer.
    """

    def __init__(self, width: int, height: int, name: str = "Background"):
        self.width = width
        self.height = height
        self.layers: list[Layer] = [Layer(width, height, name)]
        self.active_index = 0
        self._name_counter = 1

    # --- Read access ---

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self):
        return iter(self.layers)

    def __getitem__(self, index: int) -> Layer:
        return self.layers[index]

    @property
    def active(self) -> Layer:
        return self.layers[self.active_index]

    def views(self) -> list[tuple[str, bool]]:
        """Read-only (name, visible) pairs, bottom to top."""
        return [(layer.name, layer.visible) for layer in self.layers]

    def check_index(self, index: int):
        if not 0 <= index < len(self.layers):
            raise InvalidLayerOperation(
                f"Layer index {index} out of range (0..{len(self.layers) - 1})")

    def clone(self) -> "LayerStack":
        stack = LayerStack.__new__(LayerStack)
        stack.width = self.width
        stack.height = self.height
        stack.layers = [layer.clone() for layer in self.layers]
        stack.active_index = self.active_index
        stack._name_counter = self._name_counter
        return stack

    def __eq__(self, other) -> bool:
        if not isinstance(other, LayerStack):
            return NotImplemented
        return (self.width == other.width and self.height == other.height
                and self.active_index == other.active_index
                and self.layers == other.layers)

    # --- Structure ---

    def _next_name(self) -> str:
        name = f"Layer {self._name_counter}"
        self._name_counter += 1
        return name

    def add_layer(self, name: str | None = None) -> Layer:
        """Insert a transparent layer above the active one and activate it."""
        layer = Layer(self.width, self.height, name or self._next_name())
        self.active_index += 1
        self.layers.insert(self.active_index, layer)
        logger.debug("Added %r at index %d", layer, self.active_index)
        return layer

    def check_can_delete(self, index: int):
        self.check_index(index)
        if len(self.layers) == 1:
            raise LastLayerDeletion()

    def delete_layer(self, index: int) -> Layer:
        self.check_can_delete(index)
        removed = self.layers.pop(index)
        if self.active_index > index or self.active_index == len(self.layers):
            self.active_index -= 1
        logger.debug("Deleted %r; active index now %d", removed, self.active_index)
        return removed

    def duplicate_layer(self, index: int) -> Layer:
        self.check_index(index)
        copy = self.layers[index].clone()
        copy.name = f"{copy.name} copy"
        self.layers.insert(index + 1, copy)
        self.active_index = index + 1
        return copy

    def check_can_merge(self, index: int):
        self.check_index(index)
        if index == 0:
            raise InvalidLayerOperation("The bottom layer has nothing to merge into")

    def merge_down(self, index: int) -> Layer:
        """Composite layer ``index`` onto the one below it and remove it."""
        self.check_can_merge(index)
        upper = self.layers[index]
        lower = self.layers[index - 1]
        blend_layer_onto(lower.buffer, upper)
        self.layers.pop(index)
        if self.active_index >= index:
            self.active_index -= 1
        logger.debug("Merged %r into %r", upper, lower)
        return lower

    def check_can_move(self, index: int, new_index: int):
        self.check_index(index)
        self.check_index(new_index)

    def move_layer(self, index: int, new_index: int):
        self.check_can_move(index, new_index)
        active = self.layers[self.active_index]
        layer = self.layers.pop(index)
        self.layers.insert(new_index, layer)
        self.active_index = next(i for i, candidate in enumerate(self.layers) if candidate is active)

    # --- Metadata setters ---

    def set_active(self, index: int):
        self.check_index(index)
        self.active_index = index

    def rename_layer(self, index: int, name: str):
        self.check_index(index)
        self.layers[index].name = name

    def set_visible(self, index: int, visible: bool):
        self.check_index(index)
        self.layers[index].visible = visible

    def set_opacity(self, index: int, opacity: float):
        self.check_index(index)
        self.layers[index].opacity = max(0.0, min(1.0, float(opacity)))
