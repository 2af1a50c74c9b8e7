"""Manifest dialect detection."""

GO = "go"
CSHARP = "csharp"
UNKNOWN = "unknown"

_ALIASES = {
    "go": GO,
    "golang": GO,
    "c#": CSHARP,
    "csharp": CSHARP,
    "cs": CSHARP,
}


def identify(language: str | None) -> str:
    """Map a declared repository language to a manifest dialect.

    Args:
        language: The language tag from configuration, in any case

    Returns:
        Detected dialect: 'go', 'csharp', or 'unknown'
    """
    if not language:
        return UNKNOWN
    return _ALIASES.get(language.strip().lower(), UNKNOWN)
