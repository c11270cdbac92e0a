"""
Fixed prompt texts.

CONTINUE_PROMPT is sent verbatim as a synthetic user turn whenever a
response is continued; some providers are sensitive to its wording.
"""

CONTINUE_PROMPT = (
    "Continue your prior response. IMPORTANT: Immediately begin from where you "
    "left off without any interruptions.\n"
    "Do not repeat any content, including artifact and action tags."
)

SYSTEM_PROMPT = (
    "You are an expert AI assistant and exceptional senior software developer "
    "with vast knowledge across multiple programming languages, frameworks, "
    "and best practices.\n"
    "Answer precisely and completely. When a response is long, keep writing "
    "until it is finished; you may be asked to continue a truncated answer."
)

ENHANCER_PROMPT_TEMPLATE = (
    "I want you to improve the user prompt that is wrapped in "
    "`<original_prompt>` tags.\n"
    "\n"
    "IMPORTANT: Only respond with the improved prompt and nothing else!\n"
    "\n"
    "<original_prompt>\n"
    "  {message}\n"
    "</original_prompt>"
)


def get_system_prompt() -> str:
    return SYSTEM_PROMPT


def build_enhancer_prompt(message: str) -> str:
    return ENHANCER_PROMPT_TEMPLATE.format(message=message)
