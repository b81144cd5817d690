"""NiceGUI pages for Cardloom.

Import this module to register all page routes with NiceGUI.
"""

from cardloom.pages import board, index

__all__ = ["board", "index"]

# Touch modules to prevent linter from removing "unused" imports.
# These imports register @ui.page decorators as a side effect.
_PAGES = (board, index)
