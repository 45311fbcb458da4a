"""
CustomTkinter dialog asking which graphics debugger to attach.
"""
from __future__ import annotations

from typing import Callable

import customtkinter as ctk

from .selection import DebuggerSelection

WINDOW_BG = "#111115"
CARD_BG = "#1C1C23"
CARD_HOVER = "#282832"
BORDER_COLOR = "#373746"
TEXT_PRIMARY = "#EDEDF2"
TEXT_SECONDARY = "#9191A5"
ACCENT_BLUE = "#60A5FA"
ACCENT_GREEN = "#4ADE80"
ACCENT_ORANGE = "#FB923C"

CARDS = (
    (
        "NSight GPU Trace Profiler",
        "Record and analyze GPU frame timings and performance metrics",
        ACCENT_ORANGE,
        DebuggerSelection.GPU_TRACE,
    ),
    (
        "NSight Frame Debugger",
        "Capture and inspect individual rendered frames",
        ACCENT_BLUE,
        DebuggerSelection.FRAME_DEBUGGER,
    ),
    (
        "RenderDoc",
        "Open-source and cross-vendor graphics debugging tool",
        ACCENT_GREEN,
        DebuggerSelection.RENDERDOC,
    ),
)


class DebuggerPicker(ctk.CTk):
    """Modal window; ``selection`` stays NONE if the user closes it."""

    def __init__(self) -> None:
        super().__init__()
        ctk.set_appearance_mode("dark")
        self.title("Graphics Debugger Selector")
        self.resizable(False, False)
        self.configure(fg_color=WINDOW_BG)
        self.protocol("WM_DELETE_WINDOW", self.on_close)

        self.selection = DebuggerSelection.NONE
        self.body_font = ctk.CTkFont(size=13)
        self.title_font = ctk.CTkFont(size=13, weight="bold")
        self._build_layout()

    def _build_layout(self) -> None:
        content = ctk.CTkFrame(self, fg_color=WINDOW_BG)
        content.pack(fill="both", expand=True, padx=24, pady=16)

        ctk.CTkLabel(
            content,
            text="Select a debugger to attach to this session",
            font=self.body_font,
            text_color=TEXT_SECONDARY,
        ).pack(pady=(0, 18))

        for name, description, accent, value in CARDS:
            self._add_card(content, name, description, accent, lambda choice=value: self.choose(choice))

        ctk.CTkButton(
            content,
            text="Launch without debugger",
            command=self.on_close,
            fg_color=CARD_BG,
            hover_color=CARD_HOVER,
            text_color=TEXT_SECONDARY,
            font=self.body_font,
            corner_radius=10,
            height=38,
        ).pack(fill="x", pady=(10, 0))

    def _add_card(
        self,
        parent: ctk.CTkFrame,
        name: str,
        description: str,
        accent: str,
        command: Callable[[], None],
    ) -> None:
        card = ctk.CTkFrame(parent, fg_color=CARD_BG, border_color=BORDER_COLOR, border_width=1, corner_radius=12)
        card.pack(fill="x", pady=4)
        ctk.CTkLabel(card, text=name, font=self.title_font, text_color=TEXT_PRIMARY).pack(
            anchor="w", padx=16, pady=(12, 0)
        )
        ctk.CTkLabel(card, text=description, font=self.body_font, text_color=TEXT_SECONDARY).pack(
            anchor="w", padx=16, pady=(2, 6)
        )
        ctk.CTkButton(
            card,
            text="Launch",
            command=command,
            fg_color=accent,
            hover_color=CARD_HOVER,
            text_color=WINDOW_BG,
            font=self.title_font,
            corner_radius=10,
            height=34,
        ).pack(anchor="e", padx=16, pady=(0, 12))

    def choose(self, choice: DebuggerSelection) -> None:
        self.selection = choice
        self.destroy()

    def on_close(self) -> None:
        self.destroy()


def pick_debugger() -> DebuggerSelection:
    """Show the dialog and block until the user picks or closes it."""
    app = DebuggerPicker()
    app.mainloop()
    return app.selection
