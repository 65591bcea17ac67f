"""
Editor state machine.

Wraps the structural edit engine with a cursor, an edit mode and bounded
undo/redo history. One Editor instance owns one document; create as many
independent instances as needed.

Modes:
- focus: navigating, no buffers
- name: editing the cursor node's name (name_buffer/name_original)
- comment: editing the cursor node's comment (comment_buffer/comment_original)

Entering a mode always clears the other mode's buffers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from . import edits
from .config import Config, get_config
from .dom import Document, clone_document, create_initial_document
from .edits import MODE_COMMENT, MODE_FOCUS, MODE_NAME, EditResult
from .formats import ascii as _ascii  # noqa: F401 - ensure ascii format is registered
from .formats import mermaid as _mermaid  # noqa: F401 - ensure mermaid format is registered
from .formats.base import registry, wrap_code_fence
from .history import append_history, prepend_history
from .migration import migrate_legacy_empty_nodes
from .storage import DocumentStore, load_document
from .traversal import compute_visible_list, find_named

logger = logging.getLogger(__name__)


@dataclass
class EditorState:
    """Everything an observer needs to draw the editor."""
    doc: Document
    cursor_id: str
    mode: str = MODE_FOCUS
    name_buffer: str = ""
    name_original: str = ""
    comment_buffer: str = ""
    comment_original: str = ""
    history_past: list[Document] = field(default_factory=list)
    history_future: list[Document] = field(default_factory=list)

    @property
    def is_editing(self) -> bool:
        return self.mode == MODE_NAME


def sanitize_name(name: object) -> str:
    """Names never contain spaces."""
    if not isinstance(name, str):
        return ""
    return name.replace(" ", "")


def sanitize_comment(comment: object) -> str:
    return comment if isinstance(comment, str) else ""


def _empty_buffers() -> dict:
    return {"name_buffer": "", "name_original": "", "comment_buffer": "", "comment_original": ""}


def focus_fields(cursor_id: str) -> dict:
    return {"cursor_id": cursor_id, "mode": MODE_FOCUS, **_empty_buffers()}


def name_fields_from_doc(doc: Document, cursor_id: str) -> dict:
    node = doc.get(cursor_id)
    name = sanitize_name(node.name) if node is not None else ""
    return {
        **focus_fields(cursor_id),
        "mode": MODE_NAME,
        "name_buffer": name,
        "name_original": name,
    }


def comment_fields_from_doc(doc: Document, cursor_id: str) -> dict:
    node = doc.get(cursor_id)
    comment = sanitize_comment(node.comment) if node is not None else ""
    return {
        **focus_fields(cursor_id),
        "mode": MODE_COMMENT,
        "comment_buffer": comment,
        "comment_original": comment,
    }


def preserve_mode_fields(state: EditorState, cursor_id: str) -> dict:
    """Keep the active mode and its buffers, moving them to cursor_id."""
    if state.mode == MODE_NAME:
        return {
            **focus_fields(cursor_id),
            "mode": MODE_NAME,
            "name_buffer": state.name_buffer,
            "name_original": state.name_original,
        }
    if state.mode == MODE_COMMENT:
        return {
            **focus_fields(cursor_id),
            "mode": MODE_COMMENT,
            "comment_buffer": state.comment_buffer,
            "comment_original": state.comment_original,
        }
    return focus_fields(cursor_id)


# Command names used by front ends -> Editor method names
COMMANDS: dict[str, str] = {
    "select-cursor": "select_cursor",
    "select-name": "select_name",
    "move-up": "move_up",
    "move-down": "move_down",
    "move-top": "move_top",
    "move-bottom": "move_bottom",
    "move-branch-up": "move_branch_up",
    "move-branch-down": "move_branch_down",
    "insert-below": "insert_below",
    "insert-child-top": "insert_child_top",
    "indent": "indent",
    "outdent": "outdent",
    "delete": "delete_node",
    "clear-name": "clear_name",
    "start-edit": "start_edit",
    "set-name-buffer": "set_name_buffer",
    "confirm-edit": "confirm_edit",
    "cancel-edit": "cancel_edit",
    "start-comment-edit": "start_comment_edit",
    "set-comment-buffer": "set_comment_buffer",
    "confirm-comment-edit": "confirm_comment_edit",
    "cancel-comment-edit": "cancel_comment_edit",
    "type": "apply_typed_char",
    "undo": "undo",
    "redo": "redo",
}


class Editor:
    """A single document being edited, with cursor, mode and history."""

    def __init__(self, store: DocumentStore | None = None, config: Config | None = None):
        self.config = config if config is not None else get_config()
        self.store = store
        self._listeners: list[Callable[[EditorState], None]] = []

        doc = load_document(store) if store is not None else None
        if doc is None:
            doc = create_initial_document(self.config.editor.root_name)
            self._persist(doc)
        self._state = EditorState(doc=doc, cursor_id=doc.root_id)

    # -- observation ---------------------------------------------------------

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def doc(self) -> Document:
        return self._state.doc

    def subscribe(self, callback: Callable[[EditorState], None]) -> Callable[[], None]:
        """Call callback after every state change. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def visible_list(self) -> list[str]:
        return compute_visible_list(self._state.doc)

    def document_snapshot(self) -> dict:
        """Current document in the shape accepted on load."""
        return self._state.doc.to_dict()

    def dispatch(self, command: str, *args):
        """Run a command by its front-end name (e.g. 'insert-below')."""
        if command not in COMMANDS:
            raise KeyError(f"Unknown command: {command}")
        return getattr(self, COMMANDS[command])(*args)

    # -- internals -----------------------------------------------------------

    def _set_state(self, state: EditorState) -> None:
        if state is self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _update(self, **fields) -> None:
        self._set_state(replace(self._state, **fields))

    def _persist(self, doc: Document) -> None:
        if self.store is None:
            return
        try:
            self.store.save(doc.to_dict())
        except Exception:
            # A failed write never undoes an applied edit
            logger.exception("Failed to save document")

    def _commit(self, result: EditResult | None) -> bool:
        """Make an edit result current, recording the previous document for undo."""
        if result is None:
            return False

        state = self._state
        doc = result.doc
        cursor_id = result.cursor_id if result.cursor_id in doc.nodes else doc.root_id

        if result.mode is None:
            fields = preserve_mode_fields(state, cursor_id)
        elif result.mode == MODE_NAME:
            fields = name_fields_from_doc(doc, cursor_id)
        elif result.mode == MODE_COMMENT:
            fields = comment_fields_from_doc(doc, cursor_id)
        else:
            fields = focus_fields(cursor_id)

        limit = self.config.editor.history_limit
        self._set_state(replace(
            state,
            doc=doc,
            history_past=append_history(state.history_past, clone_document(state.doc), limit),
            history_future=[],
            **fields,
        ))
        logger.debug("Committed edit; cursor=%s mode=%s nodes=%d", cursor_id, fields["mode"], len(doc.nodes))
        self._persist(doc)
        return True

    def _move_cursor_by_offset(self, offset: int, preserve_mode: bool = False) -> None:
        state = self._state
        visible = compute_visible_list(state.doc)
        if state.cursor_id not in visible:
            return
        target_index = visible.index(state.cursor_id) + offset
        if target_index < 0 or target_index >= len(visible):
            return

        cursor_id = visible[target_index]
        if preserve_mode and state.mode == MODE_COMMENT:
            self._update(**comment_fields_from_doc(state.doc, cursor_id))
        elif preserve_mode and state.mode == MODE_NAME:
            self._update(**name_fields_from_doc(state.doc, cursor_id))
        else:
            self._update(**focus_fields(cursor_id))

    def _confirm_comment(self, next_mode: str, next_cursor_id: str) -> None:
        state = self._state
        if state.mode != MODE_COMMENT:
            return

        safe_cursor_id = next_cursor_id if next_cursor_id in state.doc.nodes else state.cursor_id
        node = state.doc.get(state.cursor_id)
        if node is None:
            self._update(**focus_fields(safe_cursor_id))
            return

        next_comment = sanitize_comment(state.comment_buffer)
        if sanitize_comment(node.comment) == next_comment:
            if next_mode == MODE_COMMENT:
                self._update(**comment_fields_from_doc(state.doc, safe_cursor_id))
            else:
                self._update(**focus_fields(safe_cursor_id))
            return

        self._commit(edits.set_comment(
            state.doc,
            state.cursor_id,
            next_comment,
            target_id=safe_cursor_id,
            keep_mode=next_mode == MODE_COMMENT,
        ))

    # -- cursor --------------------------------------------------------------

    def select_cursor(self, node_id: str) -> None:
        if node_id not in self._state.doc.nodes:
            return
        self._update(**focus_fields(node_id))

    def select_name(self, name: str) -> None:
        """Select the first node in preorder with this name."""
        node_id = find_named(self._state.doc, name)
        if node_id is not None:
            self.select_cursor(node_id)

    def _neighbour(self, offset: int) -> str:
        state = self._state
        visible = compute_visible_list(state.doc)
        if state.cursor_id not in visible:
            return state.cursor_id
        target_index = visible.index(state.cursor_id) + offset
        if 0 <= target_index < len(visible):
            return visible[target_index]
        return state.cursor_id

    def move_up(self) -> None:
        """Previous row. In comment mode the comment is saved and editing follows the cursor."""
        if self._state.mode != MODE_COMMENT:
            self._move_cursor_by_offset(-1)
            return
        self._confirm_comment(MODE_COMMENT, self._neighbour(-1))

    def move_down(self) -> None:
        if self._state.mode != MODE_COMMENT:
            self._move_cursor_by_offset(1)
            return
        self._confirm_comment(MODE_COMMENT, self._neighbour(1))

    def move_top(self) -> None:
        visible = compute_visible_list(self._state.doc)
        if visible:
            self._update(**focus_fields(visible[0]))

    def move_bottom(self) -> None:
        visible = compute_visible_list(self._state.doc)
        if visible:
            self._update(**focus_fields(visible[-1]))

    # -- structure -----------------------------------------------------------

    def move_branch_up(self) -> None:
        self._commit(edits.move_branch_up(self._state.doc, self._state.cursor_id))

    def move_branch_down(self) -> None:
        self._commit(edits.move_branch_down(self._state.doc, self._state.cursor_id))

    def insert_below(self) -> None:
        self._commit(edits.insert_below(self._state.doc, self._state.cursor_id))

    def insert_child_top(self) -> None:
        self._commit(edits.insert_child_top(self._state.doc, self._state.cursor_id))

    def indent(self) -> None:
        self._commit(edits.indent_right(self._state.doc, self._state.cursor_id))

    def outdent(self) -> None:
        """Outdent, or step back one row when the node cannot rise above the root."""
        state = self._state
        if state.cursor_id not in state.doc.nodes:
            return
        if not edits.can_outdent(state.doc, state.cursor_id):
            self._move_cursor_by_offset(-1, preserve_mode=True)
            return
        self._commit(edits.outdent_left(state.doc, state.cursor_id))

    def delete_node(self) -> None:
        self._commit(edits.delete_node(self._state.doc, self._state.cursor_id))

    def clear_name(self) -> None:
        self.delete_node()

    # -- name editing --------------------------------------------------------

    def start_edit(self) -> None:
        state = self._state
        if state.cursor_id in state.doc.nodes:
            self._update(**name_fields_from_doc(state.doc, state.cursor_id))

    def set_name_buffer(self, value: str) -> None:
        if self._state.mode == MODE_NAME:
            self._update(name_buffer=sanitize_name(value))

    def apply_typed_char(self, char: str) -> None:
        """Space indents; anything else is typed into the name."""
        if not isinstance(char, str) or not char:
            return
        if char == " ":
            self.indent()
            return

        state = self._state
        node = state.doc.get(state.cursor_id)
        if node is None:
            return
        if state.mode != MODE_NAME:
            current = sanitize_name(node.name)
            self._update(**{
                **name_fields_from_doc(state.doc, state.cursor_id),
                "name_buffer": f"{current}{char}",
                "name_original": current,
            })
            return
        self._update(name_buffer=f"{state.name_buffer}{char}")

    def confirm_edit(self) -> None:
        """
        Commit the name buffer.

        An empty name deletes the node (its children are promoted); on the root
        the edit is dropped instead. An unchanged name leaves no history entry.
        """
        state = self._state
        if state.mode != MODE_NAME:
            return
        node = state.doc.get(state.cursor_id)
        if node is None:
            self._update(**focus_fields(state.cursor_id))
            return

        next_name = sanitize_name(state.name_buffer)
        if next_name == "":
            if node.id == state.doc.root_id:
                self._update(**focus_fields(state.cursor_id))
                return
            self._commit(edits.delete_node(state.doc, node.id))
            return

        if node.name == next_name:
            self._update(**focus_fields(state.cursor_id))
            return
        self._commit(edits.rename_node(state.doc, node.id, next_name))

    def cancel_edit(self) -> None:
        if self._state.mode == MODE_NAME:
            self._update(**focus_fields(self._state.cursor_id))

    # -- comment editing -----------------------------------------------------

    def start_comment_edit(self) -> None:
        state = self._state
        if state.cursor_id in state.doc.nodes:
            self._update(**comment_fields_from_doc(state.doc, state.cursor_id))

    def set_comment_buffer(self, value: str) -> None:
        if self._state.mode == MODE_COMMENT:
            self._update(comment_buffer=sanitize_comment(value))

    def confirm_comment_edit(self, keep_mode: bool = False) -> None:
        self._confirm_comment(MODE_COMMENT if keep_mode else MODE_FOCUS, self._state.cursor_id)

    def cancel_comment_edit(self) -> None:
        if self._state.mode == MODE_COMMENT:
            self._update(**focus_fields(self._state.cursor_id))

    # -- history -------------------------------------------------------------

    def undo(self) -> None:
        state = self._state
        if not state.history_past:
            return
        limit = self.config.editor.history_limit
        previous = migrate_legacy_empty_nodes(state.history_past[-1])
        future = prepend_history(state.history_future, migrate_legacy_empty_nodes(state.doc), limit)
        cursor_id = state.cursor_id if state.cursor_id in previous.nodes else previous.root_id

        self._set_state(replace(
            state,
            doc=previous,
            history_past=state.history_past[:-1],
            history_future=future,
            **focus_fields(cursor_id),
        ))
        logger.debug("Undo; %d steps left", len(state.history_past) - 1)
        self._persist(previous)

    def redo(self) -> None:
        state = self._state
        if not state.history_future:
            return
        limit = self.config.editor.history_limit
        following = migrate_legacy_empty_nodes(state.history_future[0])
        past = append_history(state.history_past, migrate_legacy_empty_nodes(state.doc), limit)
        cursor_id = state.cursor_id if state.cursor_id in following.nodes else following.root_id

        self._set_state(replace(
            state,
            doc=following,
            history_past=past,
            history_future=state.history_future[1:],
            **focus_fields(cursor_id),
        ))
        logger.debug("Redo; %d steps left", len(state.history_future) - 1)
        self._persist(following)

    # -- export & persistence ------------------------------------------------

    def export(self, format_name: str, fenced: bool | None = None) -> str:
        """Render the current document with a registered export format."""
        fmt = registry.get_by_name(format_name)
        if fmt is None:
            raise KeyError(f"Unknown export format: {format_name}")
        text = fmt.render(self._state.doc, self.config.export)
        if fenced is None:
            fenced = self.config.export.fence_mermaid
        if fenced and fmt.fence_language:
            text = wrap_code_fence(text, fmt.fence_language)
        return text

    def export_ascii(self) -> str:
        return self.export("ascii")

    def export_mermaid(self, fenced: bool = False) -> str:
        return self.export("mermaid", fenced=fenced)

    def load_from_storage(self) -> bool:
        """Replace the document with the stored one, dropping history. False if none usable."""
        if self.store is None:
            return False
        doc = load_document(self.store)
        if doc is None:
            return False
        self._set_state(EditorState(doc=doc, cursor_id=doc.root_id))
        return True

    def save_to_storage(self) -> None:
        self._persist(self._state.doc)
