"""
Which debugger the user asked for.
"""
from __future__ import annotations

import enum
from typing import Optional

from .relaunch import NgfxActivity


class DebuggerSelection(enum.Enum):
    GPU_TRACE = "nsight-gpu"
    FRAME_DEBUGGER = "nsight-frame"
    RENDERDOC = "renderdoc"
    NONE = "none"

    @property
    def activity(self) -> Optional[NgfxActivity]:
        """The ngfx activity behind an Nsight selection."""
        return {
            DebuggerSelection.GPU_TRACE: NgfxActivity.GPU_TRACE,
            DebuggerSelection.FRAME_DEBUGGER: NgfxActivity.FRAME_DEBUGGER,
        }.get(self)


def parse_selection(text: Optional[str]) -> DebuggerSelection:
    """Map a setting such as ``renderdoc`` or ``nsight-gpu`` to a selection; unknown -> NONE."""
    if not text:
        return DebuggerSelection.NONE
    wanted = text.strip().lower()
    for choice in DebuggerSelection:
        if choice.value == wanted:
            return choice
    return DebuggerSelection.NONE
