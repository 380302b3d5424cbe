# app.py
"""
Chainlit front end for AskTheManual.

Users pick a Gemini API key (unless one is preset in the environment),
upload one or more manuals or pick a sample, wait while a Gemini File
Search store is built from them, and then chat with the documents. Each
answer lists the source chunks it was grounded on. "New chat" deletes the
store and starts over; closing the chat deletes it in the background.
"""

# imports built-in modules
from pathlib import Path
from typing import Optional

# imports third-party modules
import chainlit as cl

# imports local modules
from askthemanual.config import config
from askthemanual.core import (
    SAMPLE_DOCUMENTS,
    DocumentFile,
    RagStoreLifecycle,
    SessionStateMachine,
    SessionStatus,
    SuggestionRotator,
    Turn,
    UploadProgress,
)
from askthemanual.core.gemini_client import GeminiFileSearchClient
from askthemanual.core.samples import find_sample
from askthemanual.utils import format_sources, render_markdown
from askthemanual.utils.logger import get_app_logger

# Application logger
logger = get_app_logger()

config.validate_or_exit()

ACCEPTED_TYPES = [
    "application/pdf",
    "text/plain",
    "text/markdown",
    "text/html",
    "text/csv",
    "application/json",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]


class ChainlitKeyPicker:
    """Asks the user to paste a Gemini API key into the chat."""

    async def has_credential(self) -> bool:
        return bool(cl.user_session.get("gemini_api_key"))

    async def open_picker(self) -> None:
        answer = await cl.AskUserMessage(
            content="🔑 Paste your Gemini API key to continue.", timeout=300
        ).send()
        if answer and answer.get("output", "").strip():
            cl.user_session.set("gemini_api_key", answer["output"].strip())

    async def get_credential(self) -> Optional[str]:
        return cl.user_session.get("gemini_api_key")

    async def clear_credential(self) -> None:
        cl.user_session.set("gemini_api_key", None)


def get_controller() -> SessionStateMachine:
    return cl.user_session.get("controller")


def display(text: str) -> str:
    """Render answer text for the chat window."""
    return render_markdown(text) if config.RENDER_HTML else text


async def show_welcome() -> None:
    """Send the welcome screen: pending files, samples and actions."""
    controller = get_controller()
    session = controller.session

    lines = [
        "## Upload manuals, explore insights, and chat with clarity.",
        "Bring your own files or try one of the sample documents.",
    ]
    if session.credential_error:
        lines.append(f"\n⚠️ {session.credential_error}")
    if session.notice:
        lines.append(f"\nℹ️ {session.notice}")
    if session.pending_files:
        lines.append("\n**Ready to upload:**")
        lines.extend(f"- {file.name}" for file in session.pending_files)

    actions = []
    if not controller.credential_available:
        actions.append(cl.Action(name="select_key", payload={}, label="🔑 Select API key"))
    actions.append(cl.Action(name="upload_files", payload={}, label="📎 Upload files"))
    for sample in SAMPLE_DOCUMENTS:
        actions.append(
            cl.Action(
                name="load_sample",
                payload={"name": sample.name},
                label=f"📘 {sample.name} ({sample.details})",
            )
        )
    if session.pending_files:
        actions.append(cl.Action(name="start_chat", payload={}, label="💬 Chat with documents"))
        actions.append(cl.Action(name="clear_files", payload={}, label="🗑️ Clear files"))

    await cl.Message(content="\n".join(lines), actions=actions).send()


async def show_error() -> None:
    controller = get_controller()
    await cl.Message(
        content=f"### Something went wrong\n{controller.session.last_error}",
        actions=[cl.Action(name="try_again", payload={}, label="Try again")],
    ).send()


async def show_chat_ready() -> None:
    controller = get_controller()
    session = controller.session
    await cl.Message(
        content=f"**Now chatting:** {session.document_name or 'Your documents'}",
        actions=[cl.Action(name="new_chat", payload={}, label="🔄 New chat")],
    ).send()

    rotator: SuggestionRotator = cl.user_session.get("rotator")
    rotator.reset(session.example_questions)
    if rotator.current:
        suggestion_msg = cl.Message(content=f"Try: “{rotator.current}”")
        await suggestion_msg.send()

        async def update_suggestion(text: str) -> None:
            suggestion_msg.content = f"Try: “{text}”"
            suggestion_msg.actions = [
                cl.Action(name="use_suggestion", payload={"text": text}, label="Ask this")
            ]
            await suggestion_msg.update()

        rotator.on_change = update_suggestion
        rotator.start()


async def send_answer(turn: Turn) -> None:
    """Send an assistant turn with its source chunks as side elements."""
    elements = [
        cl.Text(name=label, content=excerpt, display="side")
        for label, excerpt in format_sources(turn.grounding_chunks)
    ]
    content = display(turn.text)
    if elements:
        content += "\n\n**Sources:** " + ", ".join(element.name for element in elements)
    await cl.Message(content=content, elements=elements).send()


async def run_upload() -> None:
    """Start the upload pipeline and show progress until it finishes."""
    controller = get_controller()
    progress_msg = cl.Message(content="Preparing your chat...")
    await progress_msg.send()

    async def on_progress(progress: UploadProgress) -> None:
        percent = int(progress.fraction * 100)
        progress_msg.content = (
            f"**{progress.message}** ({percent}%)\n{progress.file_name or ''}"
        )
        await progress_msg.update()

    await controller.start_upload(on_progress=on_progress)

    if controller.status is SessionStatus.CHATTING:
        await show_chat_ready()
    elif controller.status is SessionStatus.ERROR:
        await show_error()
    else:
        await show_welcome()


async def ask_for_files() -> None:
    files = await cl.AskFileMessage(
        content="Please upload one or more documents to begin!",
        accept=ACCEPTED_TYPES,
        max_size_mb=config.MAX_FILE_SIZE_MB,
        max_files=config.MAX_FILES,
        timeout=config.UPLOAD_TIMEOUT,
    ).send()
    if files:
        get_controller().add_files(
            DocumentFile(name=file.name, path=Path(file.path), mime_type=file.type)
            for file in files
        )


@cl.on_chat_start
async def start():
    """Build a fresh session controller and show the welcome screen."""
    stores = RagStoreLifecycle(GeminiFileSearchClient())
    controller = SessionStateMachine(
        stores,
        credentials=ChainlitKeyPicker(),
        preset_credential=config.GOOGLE_API_KEY,
    )
    cl.user_session.set("controller", controller)
    cl.user_session.set("rotator", SuggestionRotator())

    await controller.start()
    await show_welcome()


@cl.on_chat_end
async def end():
    """Delete the active store in the background when the user leaves."""
    controller = get_controller()
    rotator: Optional[SuggestionRotator] = cl.user_session.get("rotator")
    if rotator:
        rotator.stop()
    if controller:
        controller.teardown()


@cl.action_callback("select_key")
async def on_select_key(action: cl.Action):
    controller = get_controller()
    if await controller.select_credential():
        await cl.Message(content="✅ API key selected.").send()
    await show_welcome()


@cl.action_callback("upload_files")
async def on_upload_files(action: cl.Action):
    await ask_for_files()
    await show_welcome()


@cl.action_callback("load_sample")
async def on_load_sample(action: cl.Action):
    sample = find_sample(action.payload.get("name", ""))
    if sample:
        await get_controller().add_sample(sample)
    await show_welcome()


@cl.action_callback("clear_files")
async def on_clear_files(action: cl.Action):
    controller = get_controller()
    for index in reversed(range(len(controller.session.pending_files))):
        controller.remove_file(index)
    await show_welcome()


@cl.action_callback("start_chat")
async def on_start_chat(action: cl.Action):
    controller = get_controller()
    await controller.refresh_credential()
    if controller.status is SessionStatus.UPLOADING:
        return
    await run_upload()


@cl.action_callback("new_chat")
async def on_new_chat(action: cl.Action):
    rotator: SuggestionRotator = cl.user_session.get("rotator")
    rotator.stop()
    get_controller().end_chat()
    await show_welcome()


@cl.action_callback("try_again")
async def on_try_again(action: cl.Action):
    get_controller().acknowledge_error()
    await show_welcome()


@cl.action_callback("use_suggestion")
async def on_use_suggestion(action: cl.Action):
    text = action.payload.get("text", "")
    await cl.Message(content=text, author="user", type="user_message").send()
    await answer(text)


async def answer(text: str) -> None:
    controller = get_controller()
    if controller.session.query_pending:
        await cl.Message(content="Still thinking about your last question...").send()
        return
    turn = await controller.send_message(text)
    if turn is not None:
        await send_answer(turn)


@cl.on_message
async def main(message: cl.Message):
    """Route a user message according to the session status."""
    controller = get_controller()
    await controller.refresh_credential()

    if controller.status is SessionStatus.CHATTING:
        await answer(message.content)
        return

    if controller.status is SessionStatus.WELCOME:
        attachments = [
            DocumentFile(name=element.name, path=Path(element.path), mime_type=element.mime)
            for element in (message.elements or [])
            if element.path
        ]
        if attachments:
            controller.add_files(attachments)
        await show_welcome()
        return

    if controller.status is SessionStatus.ERROR:
        await show_error()
