"""Draft buffer bound to a checkout controller."""

from legit_editor.core.checkout import CheckoutController


class EditorState:
    """The text the user sees and types into.

    The buffer follows the selected commit and is writable only while the
    head is selected. Edits stay local until the controller saves them.
    """

    def __init__(self, controller: CheckoutController):
        self.controller = controller

    @property
    def text(self) -> str:
        return self.controller.state.display_text

    @property
    def editable(self) -> bool:
        return self.controller.can_edit

    @property
    def read_only(self) -> bool:
        return not self.editable

    @property
    def is_dirty(self) -> bool:
        return self.controller.state.is_dirty

    def edit(self, text: str) -> bool:
        """Replace the buffer; returns False and changes nothing when read-only."""
        return self.controller.edit(text)

    def append(self, text: str) -> bool:
        return self.edit(self.text + text)

    def revert(self) -> bool:
        """Discard unsaved changes."""
        return self.edit(self.controller.state.effective_content)
