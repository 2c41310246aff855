"""Prompt template management for the generative search provider."""

from pathlib import Path

from forkfinder.models import SearchRequest

PROMPT_DIR = Path(__file__).parent


def load_prompt(name: str, **kwargs) -> str:
    """Load and format a prompt template.

    Args:
        name: Name of the prompt file (without .md extension)
        **kwargs: Variables to substitute in the template

    Returns:
        Formatted prompt string

    Example:
        >>> load_prompt("restaurant_search",
        ...     location="Portland, OR",
        ...     radius=2,
        ...     cuisine_line="",
        ...     open_now_line="No, show all restaurants regardless of status")
    """
    prompt_file = PROMPT_DIR / f"{name}.md"

    if not prompt_file.exists():
        raise FileNotFoundError(f"Prompt template not found: {prompt_file}")

    template = prompt_file.read_text()
    return template.format(**kwargs)


def build_search_prompt(request: SearchRequest) -> str:
    """Render the restaurant search instructions for a search request."""
    cuisine_line = ""
    if request.cuisine:
        cuisine_line = (
            "- Cuisine: Only show restaurants serving or related to "
            f'"{request.cuisine}" food.'
        )
    open_now_line = (
        "Yes, only show currently open restaurants"
        if request.open_now
        else "No, show all restaurants regardless of status"
    )
    return load_prompt(
        "restaurant_search",
        location=request.location_text,
        radius=f"{request.radius_miles:g}",
        cuisine_line=cuisine_line,
        open_now_line=open_now_line,
    )


__all__ = ["build_search_prompt", "load_prompt"]
