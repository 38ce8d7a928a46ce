"""Editor state for the plugin: prompt entry, output path, progress and status text."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from ahmad import agent

log = logging.getLogger(__name__)

PROMPT_PLACEHOLDER = (
    "Ask for a riff, melody, or bassline with a specific instrument. Be sure to include "
    "descriptive adjectives and adjectives like 'high quality' or 'clear'."
)
FOLDER_PLACEHOLDER = "Select a folder..."
FILENAME_PLACEHOLDER = "example.midi or example.wav"
INITIAL_STATUS = "No errors yet. Happy trails!\n"
CONNECTION_OK = "Connection to AI backend is successful!"

Task = Iterator["Message"]


class MessageKind(enum.Enum):
    """Kinds of messages the editor reacts to."""

    PARAM_UPDATE = enum.auto()
    EMPTY = enum.auto()
    USER_EDIT = enum.auto()
    OUTPUT_PATH_FD_SELECTED = enum.auto()
    OUTPUT_NAME_CHANGED = enum.auto()
    PROMPT_SUBMITTED = enum.auto()
    AGENT_PROGRESS_UPDATED = enum.auto()
    RESPONSE_COMPLETE = enum.auto()
    CHECK_CONNECTION = enum.auto()
    CONNECTION_RESULT = enum.auto()
    RESET = enum.auto()
    AGENT_ERROR = enum.auto()


@dataclass(frozen=True)
class Message:
    """A message with its kind and optional payload."""

    kind: MessageKind = MessageKind.EMPTY
    payload: Any = None


class UIEvent(enum.Enum):
    """Events understood by the alternative view model."""

    EMPTY = enum.auto()
    USER_ENTRY_EDIT = enum.auto()
    OUTPUT_PATH_FD_SELECTED = enum.auto()
    OUTPUT_NAME_CHANGED = enum.auto()
    PROMPT_SUBMITTED = enum.auto()
    AGENT_PROGRESS_UPDATED = enum.auto()
    RESPONSE_COMPLETE = enum.auto()
    CHECK_CONNECTION = enum.auto()
    CONNECTION_RESULT = enum.auto()
    RESET = enum.auto()
    AGENT_ERROR = enum.auto()


def _no_task() -> Task:
    return iter(())


def _dialog_pick_folder(start: Path) -> Path | None:
    from tkinter import Tk, filedialog

    root = Tk()
    root.withdraw()
    try:
        chosen = filedialog.askdirectory(initialdir=str(start))
    finally:
        root.destroy()
    return Path(chosen) if chosen else None


@dataclass
class UserTextEditor:
    """The prompt the user types."""

    content: str = ""
    placeholder: str = PROMPT_PLACEHOLDER

    def update(self, message: Message) -> None:
        """Replace the prompt text on a user edit."""
        if message.kind is MessageKind.USER_EDIT:
            self.content = str(message.payload)


@dataclass
class AgentOutputContainer:
    """Folder and file name where the generated file is written."""

    filepath: str = FOLDER_PLACEHOLDER
    separator_text: str = "/"
    filename: str = ""
    folder_picker: Callable[[Path], Path | None] = field(
        default=_dialog_pick_folder, repr=False, compare=False
    )

    def update(self, message: Message) -> None:
        """Pick a folder or change the file name."""
        if message.kind is MessageKind.OUTPUT_PATH_FD_SELECTED:
            chosen = self.folder_picker(Path.cwd())
            if chosen is None:
                raise RuntimeError("folder selection failed")
            self.filepath = str(chosen)
        elif message.kind is MessageKind.OUTPUT_NAME_CHANGED:
            self.filename = str(message.payload)


@dataclass
class AgentProgressBar:
    """Progress of the current generation, from 0 to 100."""

    progress: float = 0.0

    def update(self, message: Message) -> None:
        """Reset on submission, follow progress updates."""
        if message.kind is MessageKind.PROMPT_SUBMITTED:
            self.progress = 0.0
        elif message.kind is MessageKind.AGENT_PROGRESS_UPDATED:
            self.progress = float(message.payload)


def reset_task() -> Task:
    """A task that yields a single reset message."""
    yield Message(MessageKind.RESET)


def check_connection_task() -> Task:
    """A task that checks the backend and yields the outcome as text."""
    try:
        agent.check_backend()
    except (OSError, RuntimeError, ValueError) as exc:
        log.error("Error checking connection to backend: %s", exc)
        yield Message(MessageKind.CONNECTION_RESULT, str(exc))
    else:
        yield Message(MessageKind.CONNECTION_RESULT, CONNECTION_OK)


def _stream_message(item: str) -> Message:
    try:
        size = int(item)
    except ValueError:
        return Message(MessageKind.AGENT_PROGRESS_UPDATED, float(item))
    return Message(
        MessageKind.RESPONSE_COMPLETE,
        f"Model response received, file is {size} bytes",
    )


def request_task(prompt: str, filepath: str | Path) -> Task:
    """A task that requests a generation and yields progress, then completion or an error."""
    try:
        for item in agent.request_response_stream(prompt, filepath):
            yield _stream_message(item)
    except (OSError, RuntimeError, ValueError, requests.RequestException) as exc:
        yield Message(MessageKind.AGENT_ERROR, str(exc))


@dataclass
class AhmadEditor:
    """The whole editor: dispatches messages to its parts and starts tasks."""

    params: Any = None
    context: Callable[[Any], None] | None = None
    user: UserTextEditor = field(default_factory=UserTextEditor)
    out_path: AgentOutputContainer = field(default_factory=AgentOutputContainer)
    progress: AgentProgressBar = field(default_factory=AgentProgressBar)
    errors: str = INITIAL_STATUS

    def update(self, message: Message) -> Task:
        """Apply ``message`` and return the task it starts, possibly empty."""
        kind = message.kind
        if kind is MessageKind.USER_EDIT:
            log.info("user edited model prompt.")
            self.user.update(message)
        elif kind is MessageKind.OUTPUT_NAME_CHANGED:
            log.info("user changed output filename: %s", message.payload)
            self.out_path.update(message)
        elif kind is MessageKind.OUTPUT_PATH_FD_SELECTED:
            log.info("opening folder select dialog...")
            self.out_path.update(message)
        elif kind is MessageKind.AGENT_PROGRESS_UPDATED:
            log.info("agent progress updated to %s", message.payload)
            self.progress.update(message)
        elif kind is MessageKind.PROMPT_SUBMITTED:
            return self._submit()
        elif kind is MessageKind.AGENT_ERROR:
            log.error("Error with agent: %s", message.payload)
            self.errors = f"Error generating response: {message.payload}"
        elif kind in (MessageKind.RESPONSE_COMPLETE, MessageKind.CONNECTION_RESULT):
            self.errors = str(message.payload)
        elif kind is MessageKind.RESET:
            self.errors = ""
            self.user = UserTextEditor()
            self.out_path = AgentOutputContainer(folder_picker=self.out_path.folder_picker)
        elif kind is MessageKind.CHECK_CONNECTION:
            self.errors = ""
            return check_connection_task()
        elif kind is MessageKind.PARAM_UPDATE:
            if self.context is not None:
                self.context(message.payload)
        return _no_task()

    def _submit(self) -> Task:
        self.errors = ""
        log.info("prompt submitted...")
        filepath = Path(self.out_path.filepath) / self.out_path.filename
        if filepath.exists():
            self.errors += (
                "Error: current filepath is not pointing at a valid location. Please ensure "
                "that the filepath points to an existing folder that doesn't contain a file "
                f"named {self.out_path.filename} \n"
            )
            return _no_task()
        self.progress.update(Message(MessageKind.AGENT_PROGRESS_UPDATED, 0.0))
        return request_task(self.user.content, filepath)