from pathlib import Path

from lab_analysis.gateway.exceptions import PromptLoadError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

LAB_TEXT_PROMPT = "lab_text_prompt.txt"
LAB_VISION_PROMPT = "lab_vision_prompt.txt"
SYSTEM_PROMPT = "system_prompt.txt"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt template by file name.

    Args:
        name: File name inside the prompt directory, e.g. ``lab_text_prompt.txt``.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Returns:
        The prompt text without surrounding whitespace.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt template: {exc}") from exc
