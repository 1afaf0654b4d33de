"""Version drift color maps."""

UPDATE_COLORS: dict[str, str] = {
    "major": "red bold",
    "minor": "yellow",
    "patch": "green",
    "up-to-date": "dim",
    "unknown": "dim",
}


def styled_update(update_type: str) -> str:
    color = UPDATE_COLORS.get(update_type, "white")
    return f"[{color}]{update_type}[/{color}]"


def styled_version(version: str) -> str:
    return version if version else "[dim]-[/dim]"
