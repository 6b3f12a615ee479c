"""Prompt templates for the three completion strategies."""

REFORMAT_INSTRUCTIONS = (
    "You are tasked with reformatting user's clipboard data. Use the user's "
    "instructions, and the content of their clipboard below to edit their "
    "clipboard content as they have requested it."
)

CLOUD_SYSTEM_PROMPT = (
    f"{REFORMAT_INSTRUCTIONS}\n\n"
    "Do not output anything else besides the reformatted clipboard content."
)

LOCAL_SYSTEM_PROMPT = (
    f"{REFORMAT_INSTRUCTIONS}\n\n"
    "Do not output anything else besides the reformatted clipboard content, "
    "so no chatter, or explanations."
)

AGENT_SYSTEM_PROMPT = (
    "You are a clipboard assistant. The user describes how they want to paste "
    "their clipboard content, and you carry it out with the clipboard tools.\n\n"
    "Always call get_clipboard_formats first to see what is on the clipboard, "
    "then choose the tools that achieve the request. Each tool returns the "
    "formats available afterwards. When you are done, reply with a short "
    "summary of what changed on the clipboard."
)


def _user_message(instructions: str, text: str) -> str:
    return f"User instructions:\n{instructions}\n\nClipboard Content:\n{text}\n"


def build_cloud_prompt(instructions: str, text: str) -> str:
    """Single prompt for the legacy completions endpoint."""
    return f"{CLOUD_SYSTEM_PROMPT}\n\n{_user_message(instructions, text)}\nOutput:\n"


def build_local_prompt(instructions: str, text: str) -> str:
    """Role-delimited prompt for the local small model."""
    return (
        f"<|system|>\n{LOCAL_SYSTEM_PROMPT}\n<|end|>\n"
        f"<|user|>\n{_user_message(instructions, text)}<|end|>\n"
        "<|assistant|>\nOutput: "
    )
