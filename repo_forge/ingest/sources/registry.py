"""
Registry mapping source format tags to source classes.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Type

from repo_forge.ingest.exceptions import SourceError
from repo_forge.ingest.sources.base import ImportSource

logger = logging.getLogger(__name__)


_source_formats: Dict[str, Type[ImportSource]] = {}


def register_source_format(name: str):
    """
    Decorator registering an ImportSource subclass under ``name``.

    Example:
        @register_source_format("directory")
        class DirectorySource(ImportSource):
            ...
    """
    def decorator(source_class: Type[ImportSource]) -> Type[ImportSource]:
        if not issubclass(source_class, ImportSource):
            raise ValueError("Source format must subclass ImportSource")
        if name in _source_formats and _source_formats[name] is not source_class:
            logger.warning(f"Replacing source format '{name}' ({_source_formats[name].__name__})")
        source_class.format_name = name
        _source_formats[name] = source_class
        logger.debug(f"Registered source format: {name} -> {source_class.__name__}")
        return source_class
    return decorator


def get_source_class(name: str) -> Type[ImportSource]:
    try:
        return _source_formats[name]
    except KeyError:
        raise SourceError(
            f"Unknown source format '{name}'. Available: {', '.join(available_formats())}"
        )


def create_source(name: str, path: Path, namespace: str,
                  content_models: Optional[List[str]] = None) -> ImportSource:
    """
    Open a source of the given format.

    Args:
        name: Registered format tag
        path: File or directory backing the source
        namespace: Default PID namespace for items
        content_models: Content-model tags for items

    Raises:
        SourceError: If the format is unknown or the path cannot be opened
    """
    source_class = get_source_class(name)
    return source_class(Path(path), namespace=namespace, content_models=content_models)


def available_formats() -> List[str]:
    return sorted(_source_formats)
