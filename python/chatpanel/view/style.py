"""chatpanel/view/style.py — prompt_toolkit Style + key bindings."""

from __future__ import annotations

from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style


panel_style = Style.from_dict(
    {
        # Transcript pane
        "transcript": "#cdd6f4",
        # Status bar
        "status": "bg:#181825 #6c7086",
        "status.room": "bg:#313244 #89b4fa bold",
        "status.topic": "#a6adc8 italic",
        "status.loading": "#f9e2af",
        # Entry line
        "entry": "#cdd6f4",
        "entry.prompt": "#a6e3a1 bold",
        "separator": "#313244",
    }
)


def build_key_bindings(panel=None, exit_fn=None) -> KeyBindings:
    kb = KeyBindings()

    @kb.add("c-c")
    @kb.add("c-d")
    def _quit(event):
        """Ctrl-C / Ctrl-D: leave the panel."""
        if exit_fn:
            exit_fn()
        else:
            event.app.exit()

    @kb.add("enter")
    def _submit(event):
        """Enter: hand the entry text to the panel and clear the line."""
        if panel is not None:
            panel.submit()

    @kb.add("tab")
    def _complete(event):
        """
        Tab: complete the word under the caret.  Repeated Tab walks forward
        through the candidates and wraps at the end; typing anything else
        starts over.
        """
        if panel is not None:
            panel.trigger_autocomplete()

    return kb
