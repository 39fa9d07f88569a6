"""File-type helpers shared by the blame cache and the edit guard."""

from __future__ import annotations

TEXT_FILE_EXTENSIONS: frozenset[str] = frozenset(
    {
        "md", "txt", "markdown", "json", "yaml", "yml", "xml", "html", "htm",
        "css", "js", "ts", "tsx", "jsx", "py", "rb", "java", "c", "cpp", "h",
        "hpp", "cs", "go", "rs", "swift", "kt", "scala", "sh", "bash", "zsh",
        "ps1", "bat", "cmd", "sql", "graphql", "vue", "svelte", "astro",
        "canvas",
        "base",
    }
)

# Files the editor opens in an editing view; only these get checkout prompts.
EDITABLE_FILE_EXTENSIONS: frozenset[str] = frozenset({"md", "markdown", "canvas"})


def _extension(file_path: str) -> str:
    name = file_path.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_text_file(file_path: str) -> bool:
    """``True`` for files that can be annotated and diffed as text."""
    return _extension(file_path) in TEXT_FILE_EXTENSIONS


def is_editable_file(file_path: str) -> bool:
    return _extension(file_path) in EDITABLE_FILE_EXTENSIONS
