"""Book content source registry and factory."""

from pathlib import Path

from smartbook_reader.sources.base import ContentSource

SOURCE_REGISTRY: dict[str, type[ContentSource]] = {}


def register_source(name: str):
    """Decorator to register a content source class."""
    def decorator(cls):
        SOURCE_REGISTRY[name] = cls
        return cls
    return decorator


def get_source(name: str) -> ContentSource:
    """Instantiate a content source by name."""
    if name not in SOURCE_REGISTRY:
        available = ", ".join(SOURCE_REGISTRY.keys()) or "(nessuna)"
        raise ValueError(f"Sorgente sconosciuta '{name}'. Disponibili: {available}")
    return SOURCE_REGISTRY[name]()


def list_sources() -> list[str]:
    """Return names of all registered sources."""
    return list(SOURCE_REGISTRY.keys())


def source_for_path(file_path: str) -> ContentSource:
    """Instantiate the source that handles a file, chosen by extension."""
    suffix = Path(file_path).suffix.lower()
    for cls in SOURCE_REGISTRY.values():
        source = cls()
        if suffix in source.extensions:
            return source
    raise ValueError(f"Formato non supportato: '{suffix or file_path}'")


def import_sources() -> None:
    """Import all source modules to trigger registration."""
    import smartbook_reader.sources.epub_source  # noqa: F401
    import smartbook_reader.sources.txt_source  # noqa: F401
