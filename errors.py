"""Exceptions raised by the editing engine. All of them are recoverable."""


class EditorError(Exception):
    """Base class for every error the engine raises."""


class OutOfBounds(EditorError, IndexError):
    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"({x}, {y}) is outside a {width}x{height} buffer")
        self.x = x
        self.y = y


class EmptySelection(EditorError):
    pass


class LastLayerDeletion(EditorError):
    def __init__(self):
        super().__init__("Cannot delete the only remaining layer")


class InvalidLayerOperation(EditorError):
    pass


class NothingToUndo(EditorError):
    def __init__(self):
        super().__init__("Nothing to undo")


class NothingToRedo(EditorError):
    def __init__(self):
        super().__init__("Nothing to redo")
