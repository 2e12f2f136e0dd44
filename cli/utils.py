"""
Shared CLI utilities.
"""


def prompt(prompt_text: str) -> str:
    """Prompt user for input with EOF handling."""
    try:
        return input(prompt_text)
    except EOFError:
        return ""


def confirm(prompt_text: str) -> bool:
    return prompt(prompt_text).strip().lower() in {"y", "yes"}
